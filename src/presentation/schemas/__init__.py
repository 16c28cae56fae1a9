"""API schemas."""

from src.presentation.schemas.breaker import BreakerListResponse, BreakerStatus
from src.presentation.schemas.error import ErrorDetail, ErrorResponse


__all__ = [
    "BreakerListResponse",
    "BreakerStatus",
    "ErrorDetail",
    "ErrorResponse",
]
