"""Resilience patterns (circuit breaker, startup pipeline)."""

from src.infrastructure.patterns.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerService,
    CircuitState,
    TransitionEvent,
)
from src.infrastructure.patterns.startup_pipeline import (
    Failed,
    PipelineResult,
    PipelineStep,
    Ready,
    StartupPipeline,
)


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerService",
    "CircuitState",
    "Failed",
    "PipelineResult",
    "PipelineStep",
    "Ready",
    "StartupPipeline",
    "TransitionEvent",
]
