"""Infrastructure layer containing implementations."""

__all__ = [
    "config",
    "logging",
    "patterns",
    "persistence",
]
