"""Tests for domain exceptions.

Test Organization:
- TestDomainException: Base exception behavior
- TestResilienceErrors: Breaker rejection, timeout and startup abort errors
"""

import pytest

from src.domain.exceptions import (
    BreakerOpenError,
    DomainException,
    EntityNotFoundError,
    OperationTimeoutError,
    ResilienceError,
    StartupAbortedError,
)
from src.infrastructure.patterns.circuit_breaker import CircuitState


class TestDomainException:
    """Test the base domain exception."""

    def test_stores_message_and_details(self) -> None:
        """Test message and details are kept as attributes.

        Arrange: Message and details
        Act: Create exception
        Assert: Attributes and str() match
        """
        # Arrange & Act
        exc = DomainException("Something failed", details={"field": "name"})

        # Assert
        assert exc.message == "Something failed"
        assert exc.details == {"field": "name"}
        assert exc.code == "DOMAIN_ERROR"
        assert str(exc) == "Something failed"

    def test_details_default_to_none(self) -> None:
        """Test details are optional."""
        assert DomainException("x").details is None

    def test_entity_not_found_code(self) -> None:
        """Test EntityNotFoundError carries its own code."""
        exc = EntityNotFoundError("Circuit breaker 'x' not found")

        assert exc.code == "ENTITY_NOT_FOUND"
        assert isinstance(exc, DomainException)


class TestResilienceErrors:
    """Test errors raised by the breaker and the server lifecycle."""

    @pytest.mark.parametrize(
        "error_class",
        [BreakerOpenError, OperationTimeoutError, StartupAbortedError],
    )
    def test_share_resilience_base(self, error_class: type[Exception]) -> None:
        """Test every resilience error derives from ResilienceError."""
        assert issubclass(error_class, ResilienceError)
        assert issubclass(error_class, DomainException)

    def test_breaker_open_error_describes_rejection(self) -> None:
        """Test BreakerOpenError names the breaker and its state."""
        # Act
        exc = BreakerOpenError("ft-circuit-breaker", CircuitState.HALF_OPEN)

        # Assert
        assert exc.code == "CIRCUIT_OPEN"
        assert exc.breaker == "ft-circuit-breaker"
        assert exc.state == "half_open"
        assert str(exc) == "Circuit breaker 'ft-circuit-breaker' rejected the call (half_open)"
        assert exc.details == {"breaker": "ft-circuit-breaker", "state": "half_open"}

    def test_operation_timeout_error_includes_timeout(self) -> None:
        """Test OperationTimeoutError reports the exceeded timeout."""
        # Act
        exc = OperationTimeoutError("pages", 250)

        # Assert
        assert exc.code == "OPERATION_TIMEOUT"
        assert exc.timeout_ms == 250
        assert "250ms" in str(exc)
        assert exc.details == {"breaker": "pages", "timeout_ms": 250}

    def test_startup_aborted_error_names_step(self) -> None:
        """Test StartupAbortedError names the step and the cause."""
        # Arrange
        cause = OSError("Address already in use")

        # Act
        exc = StartupAbortedError("start_listener", cause)

        # Assert
        assert exc.code == "STARTUP_ABORTED"
        assert exc.step == "start_listener"
        assert "start_listener" in str(exc)
        assert "Address already in use" in str(exc)
        assert exc.details == {"step": "start_listener", "error_type": "OSError"}
