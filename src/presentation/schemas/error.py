"""Error response schemas."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Error detail schema."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Any | None = Field(None, description="Additional error details")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "CIRCUIT_OPEN",
                    "message": "Circuit breaker 'pages' rejected the call (open)",
                    "details": {"breaker": "pages", "state": "open"},
                },
                {
                    "code": "ENTITY_NOT_FOUND",
                    "message": "Circuit breaker 'unknown' not found",
                    "details": None,
                },
            ]
        }
    }


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: ErrorDetail = Field(..., description="Error information")
