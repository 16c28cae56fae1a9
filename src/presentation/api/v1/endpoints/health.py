"""Health check endpoints for monitoring and orchestration.

Reports database connectivity and the state of every circuit breaker, so a
load balancer or operator can see when a protected dependency is failing.
"""

from typing import Annotated

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from src.container import Container
from src.infrastructure.config import Settings, get_settings
from src.infrastructure.patterns.circuit_breaker import CircuitBreakerService, CircuitState
from src.infrastructure.persistence.database import Database
from src.presentation.schemas.breaker import BreakerStatus


router = APIRouter(tags=["health"])

DATABASE_BREAKER = "database"


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str
    database: str
    breakers: dict[str, BreakerStatus]

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "degraded",
                    "version": "0.1.0",
                    "environment": "production",
                    "database": "healthy",
                    "breakers": {
                        "boom": {"state": "open", "failure_count": 1, "max_failures": 1}
                    },
                }
            ]
        }
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health Check",
    description="""
Check if the API and its dependencies are operational.

The status is `degraded` when any circuit breaker is not closed and
`unhealthy` when the database cannot be reached.
    """,
)
@inject
async def health_check(
    database: Annotated[Database, Depends(Provide[Container.database])],
    circuit_breaker: Annotated[CircuitBreakerService, Depends(Provide[Container.circuit_breaker])],
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """Health check endpoint using DI container.

    Args:
        database: Injected database instance from DI container
        circuit_breaker: Injected breaker registry
        settings: Application settings

    Returns:
        Health status including database connectivity and breaker states
    """
    database_ok = await database.health_check()
    breakers = {
        name: BreakerStatus(**info) for name, info in circuit_breaker.snapshot().items()
    }

    overall = "healthy"
    if any(info.state != CircuitState.CLOSED for info in breakers.values()):
        overall = "degraded"
    if not database_ok:
        overall = "unhealthy"

    return HealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.app_env,
        database="healthy" if database_ok else "unhealthy",
        breakers=breakers,
    )


@router.get(
    "/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness Check",
    description="""
Ping the database through the `database` circuit breaker.

Error responses:

- **503**: the breaker rejected the ping
- **504**: the ping overran the breaker's call timeout
- **500**: the database reported an error
    """,
)
@inject
async def readiness_check(
    database: Annotated[Database, Depends(Provide[Container.database])],
    circuit_breaker: Annotated[CircuitBreakerService, Depends(Provide[Container.circuit_breaker])],
) -> dict[str, str]:
    """Readiness probe for orchestrators.

    Errors from the protected ping are not caught here; the global exception
    handlers turn them into error responses.

    Raises:
        BreakerOpenError: If the database breaker rejected the ping
        OperationTimeoutError: If the ping overran the call timeout
    """
    await circuit_breaker.call_with_breaker(DATABASE_BREAKER, database.ping)
    return {"status": "ready"}


@router.get(
    "/",
    status_code=status.HTTP_200_OK,
    summary="API Root",
)
async def root() -> dict[str, str]:
    """Root endpoint providing API information and navigation links."""
    return {
        "message": "Resilient wiki core",
        "docs": "/docs",
        "health": "/health",
        "ready": "/ready",
        "breakers": "/breakers",
    }
