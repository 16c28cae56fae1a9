"""FastAPI application factory and configuration."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.container import Container
from src.infrastructure.config import get_settings
from src.infrastructure.logging.config import configure_logging, get_logger
from src.presentation.api.middleware.error_handling import setup_exception_handlers
from src.presentation.api.middleware.logging import LoggingMiddleware
from src.presentation.api.middleware.request_context import RequestContextMiddleware
from src.presentation.api.v1 import api_router


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan events.

    Storage and the listener are already up when this runs; the server
    lifecycle owns and releases them.
    """
    logger.info("application_startup", app_name=app.title, version=app.version)

    yield

    breakers = app.state.container.circuit_breaker().snapshot()
    logger.info("application_shutdown", breakers=breakers)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    # Configure logging (with trace context)
    configure_logging(settings)

    # Create and wire dependency injection container
    container = Container()
    container.wire(
        modules=[
            "src.presentation.api.v1.endpoints.health",
            "src.presentation.api.v1.endpoints.breakers",
        ]
    )

    tags_metadata = [
        {
            "name": "health",
            "description": "Health check of the API, its database and its circuit breakers.",
        },
        {
            "name": "breakers",
            "description": """
Circuit breaker inspection and control.

- **GET /breakers**: state and failure count of every breaker
- **POST /breakers/{name}/reset**: force a breaker closed
- **GET /boom**: demo call that always overruns its timeout
            """,
        },
    ]

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
# Resilient wiki core

Startup sequencing and circuit breaking for the wiki service.

- **Startup pipeline**: storage is prepared before the HTTP listener starts;
  any failing step aborts startup with its original error
- **Circuit breakers**: per-attempt timeouts, bounded retries, cool-down and
  a single half-open probe
- **Structured logging**: JSON logs with breaker state transitions
        """,
        openapi_tags=tags_metadata,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        lifespan=lifespan,
    )

    # Store container in app state for access if needed
    app.state.container = container

    setup_exception_handlers(app)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(LoggingMiddleware)

    app.include_router(api_router, prefix=settings.api_v1_prefix)

    return app
