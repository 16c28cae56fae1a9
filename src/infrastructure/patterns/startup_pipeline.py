"""Sequential startup pipeline that fails as a whole on the first failing step.

Steps run strictly in order because later steps depend on state the earlier
ones established (the HTTP listener cannot start before storage is ready).
A failing step stops the pipeline; its exception is returned unchanged in
``Failed.reason``. Cleaning up a step's partial side effects is the step's
own job.
"""

import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import NoReturn

from src.infrastructure.logging.config import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class PipelineStep:
    """A named asynchronous unit of startup work.

    Attributes:
        name: Step identifier used in logs and in ``Failed.step``
        action: Zero-argument async callable; raising signals failure
    """

    name: str
    action: Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class Ready:
    """Every step completed successfully."""

    @property
    def ok(self) -> bool:
        """Always True: startup may proceed."""
        return True


@dataclass(frozen=True)
class Failed:
    """A step failed; later steps did not run.

    Attributes:
        reason: The failing step's exception, unmodified
        step: Name of the failing step
    """

    reason: Exception
    step: str

    @property
    def ok(self) -> bool:
        """Always False: startup must be aborted."""
        return False

    def raise_reason(self) -> NoReturn:
        """Re-raise the failing step's exception."""
        raise self.reason


PipelineResult = Ready | Failed


class StartupPipeline:
    """Runs startup steps one after another and reports a single result."""

    def __init__(self, name: str = "startup") -> None:
        self.name = name

    async def run(self, steps: Sequence[PipelineStep]) -> PipelineResult:
        """Run ``steps`` in order, stopping at the first failure.

        Args:
            steps: Ordered startup steps

        Returns:
            ``Ready`` if every step succeeded, otherwise ``Failed`` carrying
            the first failing step's exception
        """
        total = len(steps)
        for position, step in enumerate(steps, start=1):
            logger.info(
                "startup_step_started",
                pipeline=self.name,
                step=step.name,
                position=position,
                total=total,
            )
            start_time = time.perf_counter()
            try:
                await step.action()
            except Exception as exc:
                logger.error(
                    "startup_step_failed",
                    pipeline=self.name,
                    step=step.name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    skipped=[pending.name for pending in steps[position:]],
                )
                return Failed(reason=exc, step=step.name)

            duration = time.perf_counter() - start_time
            logger.info(
                "startup_step_completed",
                pipeline=self.name,
                step=step.name,
                duration=f"{duration:.3f}s",
            )

        logger.info("startup_pipeline_ready", pipeline=self.name, steps=total)
        return Ready()
