"""Domain-specific exceptions for business logic and resilience errors.

This module defines the exception hierarchy for domain errors, providing
consistent error handling across the application layer. The resilience
errors are raised by the circuit breaker and the startup lifecycle; the
wrapped operation's own exceptions are never re-wrapped into these types.
"""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain-related errors.

    Provides a consistent interface for domain exceptions with error codes
    and optional contextual details.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
        details: Optional additional error context (dict or list)
    """

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | list[Any] | None = None) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error description
            details: Optional additional context about the error
        """
        self.message = message
        self.details = details
        super().__init__(self.message)


class EntityNotFoundError(DomainException):
    """Raised when a requested entity does not exist.

    Use this exception when a lookup by name or identifier returns nothing
    (e.g., an unknown circuit breaker name).
    """

    code = "ENTITY_NOT_FOUND"


class ResilienceError(DomainException):
    """Base exception for circuit breaker and startup failures."""

    code = "RESILIENCE_ERROR"


class BreakerOpenError(ResilienceError):
    """Raised when a call is rejected without running the protected operation.

    The breaker is either open or its single half-open probe slot is already
    taken by another caller. The breaker never retries a rejection.
    """

    code = "CIRCUIT_OPEN"

    def __init__(self, breaker: str, state: str) -> None:
        self.breaker = breaker
        self.state = str(state)
        super().__init__(
            f"Circuit breaker '{breaker}' rejected the call ({self.state})",
            details={"breaker": breaker, "state": self.state},
        )


class OperationTimeoutError(ResilienceError):
    """Raised when a protected attempt does not resolve within its timeout."""

    code = "OPERATION_TIMEOUT"

    def __init__(self, breaker: str, timeout_ms: int) -> None:
        self.breaker = breaker
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Operation protected by '{breaker}' timed out after {timeout_ms}ms",
            details={"breaker": breaker, "timeout_ms": timeout_ms},
        )


class StartupAbortedError(ResilienceError):
    """Raised by the server lifecycle when a startup step failed.

    The failing step's own exception is kept as ``__cause__``.
    """

    code = "STARTUP_ABORTED"

    def __init__(self, step: str, cause: BaseException) -> None:
        self.step = step
        super().__init__(
            f"Startup aborted at step '{step}': {cause}",
            details={"step": step, "error_type": type(cause).__name__},
        )
