"""Server lifecycle: sequenced startup followed by serving HTTP.

Startup runs two ordered steps through the startup pipeline: prepare the
database, then bind the HTTP listener. Only when both succeeded does uvicorn
start serving on the already bound socket.
"""

import socket

import uvicorn
from fastapi import FastAPI

from src.domain.exceptions import StartupAbortedError
from src.infrastructure.config import Settings
from src.infrastructure.logging.config import get_logger
from src.infrastructure.patterns.startup_pipeline import (
    Failed,
    PipelineResult,
    PipelineStep,
    StartupPipeline,
)
from src.infrastructure.persistence.database import Database


logger = get_logger(__name__)


class WikiServer:
    """Owns the database and the listening socket for one server process."""

    def __init__(
        self,
        settings: Settings,
        app: FastAPI,
        database: Database,
        pipeline: StartupPipeline | None = None,
    ) -> None:
        self.settings = settings
        self.app = app
        self.database = database
        self.pipeline = pipeline or StartupPipeline(name=settings.app_name)
        self._socket: socket.socket | None = None

    @property
    def bound_address(self) -> tuple[str, int] | None:
        """Host and port the listener is bound to, once started."""
        if self._socket is None:
            return None
        host, port = self._socket.getsockname()[:2]
        return host, port

    def startup_steps(self) -> list[PipelineStep]:
        """Ordered startup steps; the listener depends on prepared storage."""
        return [
            PipelineStep(name="prepare_database", action=self.database.prepare),
            PipelineStep(name="start_listener", action=self.start_listener),
        ]

    async def start_listener(self) -> None:
        """Bind and listen on the configured host and port.

        Raises:
            OSError: If the address cannot be bound (e.g. port in use)
        """
        try:
            self._socket = socket.create_server((self.settings.host, self.settings.port))
        except OSError as exc:
            logger.error(
                "http_server_start_failed",
                host=self.settings.host,
                port=self.settings.port,
                error=str(exc),
            )
            raise
        host, port = self.bound_address or (self.settings.host, self.settings.port)
        logger.info("http_server_listening", host=host, port=port)

    async def start(self) -> PipelineResult:
        """Run the startup pipeline once."""
        return await self.pipeline.run(self.startup_steps())

    async def serve(self) -> None:
        """Start up, then serve until uvicorn is asked to stop.

        Raises:
            StartupAbortedError: If a startup step failed; the step's
                exception is the ``__cause__``
        """
        try:
            result = await self.start()
            if isinstance(result, Failed):
                raise StartupAbortedError(result.step, result.reason) from result.reason

            config = uvicorn.Config(
                self.app,
                log_level=self.settings.log_level.lower(),
                lifespan="on",
            )
            server = uvicorn.Server(config)
            await server.serve(sockets=[self._socket] if self._socket else None)
        finally:
            await self.close()

    async def close(self) -> None:
        """Release the listening socket and the database engine."""
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        await self.database.close()
        logger.info("wiki_server_closed")
