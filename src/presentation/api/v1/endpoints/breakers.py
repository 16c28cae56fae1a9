"""Circuit breaker endpoints.

Lists and resets the process's circuit breakers, and exposes ``/boom``: a
protected call that always overruns its 1 ms timeout, useful for watching the
breaker open, reject, probe and recover.
"""

import asyncio
from typing import Annotated

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse

from src.container import Container
from src.domain.exceptions import EntityNotFoundError
from src.infrastructure.logging.config import get_logger
from src.infrastructure.patterns.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerService,
)
from src.presentation.schemas.breaker import BreakerListResponse, BreakerStatus


logger = get_logger(__name__)

router = APIRouter(tags=["breakers"])

BOOM_BREAKER = "ft-circuit-breaker"
BOOM_BREAKER_CONFIG = CircuitBreakerConfig(
    max_failures=1,
    max_retries=1,
    call_timeout_ms=1,
    reset_timeout_ms=1,
    fallback_on_failure=False,
)
BOOM_DELAY_SECONDS = 0.005


async def slow_operation() -> str:
    """Operation that never finishes inside the boom breaker's timeout."""
    await asyncio.sleep(BOOM_DELAY_SECONDS)
    return "done"


@router.get(
    "/breakers",
    response_model=BreakerListResponse,
    status_code=status.HTTP_200_OK,
    summary="List circuit breakers",
)
@inject
async def list_breakers(
    circuit_breaker: Annotated[CircuitBreakerService, Depends(Provide[Container.circuit_breaker])],
) -> BreakerListResponse:
    """Return the state of every circuit breaker created so far."""
    return BreakerListResponse(
        breakers={
            name: BreakerStatus(**info) for name, info in circuit_breaker.snapshot().items()
        }
    )


@router.post(
    "/breakers/{name}/reset",
    response_model=BreakerStatus,
    status_code=status.HTTP_200_OK,
    summary="Reset a circuit breaker",
    description="Force the named breaker closed and clear its failure count.",
)
@inject
async def reset_breaker(
    name: str,
    circuit_breaker: Annotated[CircuitBreakerService, Depends(Provide[Container.circuit_breaker])],
) -> BreakerStatus:
    """Reset a breaker by name.

    Raises:
        EntityNotFoundError: If no breaker with this name exists
    """
    breaker = circuit_breaker.find_breaker(name)
    if breaker is None:
        raise EntityNotFoundError(f"Circuit breaker '{name}' not found")

    breaker.reset()
    logger.info("circuit_breaker_reset", breaker=name)
    return BreakerStatus(**circuit_breaker.snapshot()[name])


@router.get(
    "/boom",
    response_class=PlainTextResponse,
    status_code=status.HTTP_200_OK,
    summary="Circuit breaker demo",
)
@inject
async def boom(
    circuit_breaker: Annotated[CircuitBreakerService, Depends(Provide[Container.circuit_breaker])],
) -> str:
    """Run the slow operation through the demo breaker and report the outcome."""
    breaker = circuit_breaker.get_breaker(BOOM_BREAKER, BOOM_BREAKER_CONFIG)
    try:
        await breaker.execute(slow_operation)
    except Exception as exc:
        logger.info("boom_failed", error=str(exc), error_type=type(exc).__name__)
        return f"boom fail {exc}"
    return "boom success"
