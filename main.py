"""Main entry point for the wiki server."""

import asyncio

from src.app.lifecycle import WikiServer
from src.domain.exceptions import StartupAbortedError
from src.infrastructure.config import get_settings
from src.infrastructure.logging.config import get_logger
from src.presentation.api import create_app


app = create_app()
logger = get_logger(__name__)


def main() -> None:
    """Prepare storage, bind the listener, then serve the application."""
    container = app.state.container
    server = WikiServer(
        settings=get_settings(),
        app=app,
        database=container.database(),
        pipeline=container.startup_pipeline(),
    )

    try:
        asyncio.run(server.serve())
    except StartupAbortedError as exc:
        logger.error("startup_aborted", step=exc.step, error=str(exc.__cause__))
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
