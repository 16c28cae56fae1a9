"""Circuit breaker pattern for resilient calls to slow or failing operations.

This module implements the circuit breaker pattern to prevent cascading
failures. A breaker wraps an async operation, bounds every attempt with a
timeout, retries a failed call a fixed number of times and, after too many
failed calls, stops invoking the operation until a cool-down has elapsed.

Circuit States:
    - Closed: Normal operation, calls pass through
    - Open: Too many failed calls, calls are rejected immediately
    - Half-Open: Cool-down elapsed, exactly one probe call is let through

All state changes happen in synchronous sections between awaits, so on a
single event loop the transitions are serialized without a lock and no two
tasks can hold the half-open probe slot at the same time.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from functools import partial
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from src.domain.exceptions import BreakerOpenError, OperationTimeoutError
from src.infrastructure.logging.config import get_logger


logger = get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
Fallback = Callable[[Exception], T]


class CircuitState(StrEnum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerConfig(BaseModel):
    """Validated circuit breaker configuration.

    Durations are in milliseconds. Every attempt is bounded by
    ``call_timeout_ms``; 0 is a zero-length window that only lets through an
    attempt which resolves without suspending.
    """

    model_config = ConfigDict(frozen=True)

    max_failures: int = Field(default=5, ge=1, description="Failed calls before the circuit opens")
    reset_timeout_ms: int = Field(
        default=30_000, ge=0, description="Cool-down before a half-open probe is allowed"
    )
    call_timeout_ms: int = Field(default=10_000, ge=0, description="Timeout of a single attempt")
    max_retries: int = Field(default=0, ge=0, description="Extra attempts per call")
    fallback_on_failure: bool = Field(
        default=False, description="Return the fallback's value instead of raising"
    )


@dataclass(frozen=True)
class TransitionEvent:
    """Notification emitted on every state change."""

    breaker: str
    old_state: CircuitState
    new_state: CircuitState
    timestamp: datetime


TransitionListener = Callable[[TransitionEvent], None]


@dataclass(frozen=True)
class _Permit:
    """Admission ticket for one execute() call.

    ``generation`` identifies the breaker epoch the call was admitted in.
    Any transition starts a new epoch, which invalidates the permit.
    """

    generation: int
    probe: bool


def _discard_outcome(task: "asyncio.Future[Any]") -> None:
    # Abandoned attempts still finish; read the outcome so it is not reported
    # as never retrieved.
    if not task.cancelled():
        task.exception()


class CircuitBreaker:
    """Closed/Open/Half-Open state machine guarding a single kind of operation.

    Create one instance per protected operation kind and reuse it for the
    lifetime of the process.

    Attributes:
        name: Identifier used in transition events and log records
        config: Validated configuration
    """

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        listeners: Iterable[TransitionListener] = (),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize a closed circuit breaker.

        Args:
            name: Identifier for the protected operation
            config: Breaker configuration (defaults when omitted)
            listeners: Callables notified on every state transition
            clock: Monotonic time source in seconds
        """
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._listeners: list[TransitionListener] = list(listeners)
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None
        self._generation = 0

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state

    @property
    def failure_count(self) -> int:
        """Consecutive failed calls; frozen while the circuit is open."""
        return self._failure_count

    @property
    def opened_at(self) -> float | None:
        """Clock reading of the last transition to open, if any."""
        return self._opened_at

    def add_listener(self, listener: TransitionListener) -> None:
        """Register a callable notified on every state transition."""
        self._listeners.append(listener)

    def reset(self) -> None:
        """Force the circuit closed and clear the failure count.

        An in-flight half-open probe loses its slot; its outcome is ignored.
        """
        self._failure_count = 0
        self._opened_at = None
        self._transition(CircuitState.CLOSED)

    async def execute(self, operation: Operation[T], fallback: Fallback[T] | None = None) -> T:
        """Run ``operation`` under circuit breaker protection.

        The operation is attempted up to ``max_retries + 1`` times, each
        attempt bounded by ``call_timeout_ms``. A call whose attempts all fail
        counts as one failure. When the call is rejected or fails and
        ``fallback_on_failure`` is set, ``fallback`` is called with the final
        cause and its value returned.

        Args:
            operation: Zero-argument async callable to protect
            fallback: Synchronous function mapping the failure cause to a value

        Returns:
            The operation's result, or the fallback's value

        Raises:
            BreakerOpenError: If the call was rejected and no fallback applies
            OperationTimeoutError: If the last attempt timed out and no fallback applies
            Exception: The operation's own exception from the last attempt
        """
        try:
            permit = self._admit()
        except BreakerOpenError as exc:
            logger.debug("circuit_breaker_rejected", breaker=self.name, state=str(self._state))
            return self._fallback_or_raise(exc, fallback)

        retries_left = self.config.max_retries
        try:
            while True:
                try:
                    result = await self._attempt(operation)
                except Exception as exc:
                    if retries_left > 0 and self._is_valid(permit):
                        retries_left -= 1
                        logger.info(
                            "circuit_breaker_retry",
                            breaker=self.name,
                            error=str(exc),
                            error_type=type(exc).__name__,
                            retries_left=retries_left,
                        )
                        continue
                    self._on_failure(permit, exc)
                    return self._fallback_or_raise(exc, fallback)
                self._on_success(permit)
                return result
        except asyncio.CancelledError:
            self._on_cancelled(permit)
            raise

    def _admit(self) -> _Permit:
        if self._state is CircuitState.OPEN:
            if self._cooled_down():
                self._transition(CircuitState.HALF_OPEN)
                return _Permit(generation=self._generation, probe=True)
            raise BreakerOpenError(self.name, self._state)
        if self._state is CircuitState.HALF_OPEN:
            # The probe slot is taken until the probe resolves.
            raise BreakerOpenError(self.name, self._state)
        return _Permit(generation=self._generation, probe=False)

    def _cooled_down(self) -> bool:
        if self._opened_at is None:
            return True
        elapsed_ms = (self._clock() - self._opened_at) * 1000
        return elapsed_ms >= self.config.reset_timeout_ms

    def _is_valid(self, permit: _Permit) -> bool:
        return permit.generation == self._generation

    async def _attempt(self, operation: Operation[T]) -> T:
        timeout_ms = self.config.call_timeout_ms
        task = asyncio.ensure_future(operation())
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task in done:
            return task.result()

        # Abandon the attempt: request cancellation but never wait for it.
        task.cancel()
        task.add_done_callback(_discard_outcome)
        raise OperationTimeoutError(self.name, timeout_ms)

    def _on_success(self, permit: _Permit) -> None:
        if not self._is_valid(permit):
            return
        self._failure_count = 0
        if permit.probe:
            self._transition(CircuitState.CLOSED)

    def _on_failure(self, permit: _Permit, exc: Exception) -> None:
        if not self._is_valid(permit):
            logger.debug("circuit_breaker_stale_failure", breaker=self.name, error=str(exc))
            return
        if permit.probe:
            self._open()
            return
        self._failure_count += 1
        logger.error(
            "circuit_breaker_failure",
            breaker=self.name,
            error=str(exc),
            error_type=type(exc).__name__,
            failure_count=self._failure_count,
        )
        if self._failure_count >= self.config.max_failures:
            self._open()

    def _on_cancelled(self, permit: _Permit) -> None:
        # A cancelled probe must not keep the probe slot forever.
        if permit.probe and self._is_valid(permit):
            self._open()

    def _open(self) -> None:
        self._opened_at = self._clock()
        self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        self._generation += 1

        event = TransitionEvent(
            breaker=self.name,
            old_state=old_state,
            new_state=new_state,
            timestamp=datetime.now(UTC),
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("circuit_breaker_listener_failed", breaker=self.name)

    def _fallback_or_raise(self, error: Exception, fallback: Fallback[T] | None) -> T:
        if self.config.fallback_on_failure and fallback is not None:
            logger.info(
                "circuit_breaker_fallback",
                breaker=self.name,
                error_type=type(error).__name__,
            )
            return fallback(error)
        raise error

    def __repr__(self) -> str:
        return (
            f"<CircuitBreaker(name={self.name!r}, state={self._state}, "
            f"failure_count={self._failure_count})>"
        )


class CircuitBreakerService:
    """Registry of named circuit breakers with logging of state transitions.

    Each protected operation kind gets one breaker, created on first use and
    reused for the rest of the process.
    """

    def __init__(self, defaults: CircuitBreakerConfig | None = None) -> None:
        """Initialize circuit breaker service with empty breaker registry.

        Args:
            defaults: Configuration for breakers created without an explicit one
        """
        self._defaults = defaults or CircuitBreakerConfig()
        self._breakers: dict[str, CircuitBreaker] = {}

    def get_breaker(self, name: str, config: CircuitBreakerConfig | None = None) -> CircuitBreaker:
        """Get or create a circuit breaker for a named operation.

        The configuration only applies when the breaker is first created.

        Args:
            name: Unique identifier for the circuit breaker
            config: Breaker configuration (service defaults when omitted)

        Returns:
            Circuit breaker instance for the named operation
        """
        if name not in self._breakers:
            breaker_config = config or self._defaults
            self._breakers[name] = CircuitBreaker(
                name=name,
                config=breaker_config,
                listeners=[self._create_listener(name)],
            )
            logger.info(
                "circuit_breaker_created",
                name=name,
                max_failures=breaker_config.max_failures,
                max_retries=breaker_config.max_retries,
                call_timeout_ms=breaker_config.call_timeout_ms,
                reset_timeout_ms=breaker_config.reset_timeout_ms,
            )
        return self._breakers[name]

    def find_breaker(self, name: str) -> CircuitBreaker | None:
        """Return the named breaker if it has been created."""
        return self._breakers.get(name)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Describe the state of every registered breaker."""
        return {
            name: {
                "state": str(breaker.state),
                "failure_count": breaker.failure_count,
                "max_failures": breaker.config.max_failures,
            }
            for name, breaker in sorted(self._breakers.items())
        }

    def _create_listener(self, name: str) -> TransitionListener:
        """Create a transition listener that logs state changes.

        Args:
            name: Circuit breaker name for logging context

        Returns:
            Listener logging every transition
        """

        def log_transition(event: TransitionEvent) -> None:
            logger.warning(
                "circuit_breaker_state_change",
                breaker=name,
                old_state=str(event.old_state),
                new_state=str(event.new_state),
                timestamp=event.timestamp.isoformat(),
            )

        return log_transition

    async def call_with_breaker(
        self,
        breaker_name: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        fallback: Fallback[T] | None = None,
        **kwargs: Any,
    ) -> T:
        """Execute function with circuit breaker protection.

        Args:
            breaker_name: Name of circuit breaker to use
            func: Async function to call with protection
            args: Positional arguments for function
            fallback: Optional fallback used when the breaker config allows it
            kwargs: Keyword arguments for function

        Returns:
            Function result, or the fallback's value

        Raises:
            BreakerOpenError: If the circuit rejected the call
            OperationTimeoutError: If the last attempt timed out
            Exception: Any exception raised by the protected function
        """
        breaker = self.get_breaker(breaker_name)
        return await breaker.execute(partial(func, *args, **kwargs), fallback)
