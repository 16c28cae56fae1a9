"""Circuit breaker status schemas."""

from pydantic import BaseModel, Field


class BreakerStatus(BaseModel):
    """State of a single circuit breaker."""

    state: str = Field(..., description="closed, open or half_open")
    failure_count: int = Field(..., ge=0, description="Consecutive failed calls")
    max_failures: int = Field(..., ge=1, description="Failed calls before the circuit opens")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"state": "open", "failure_count": 1, "max_failures": 1},
            ]
        }
    }


class BreakerListResponse(BaseModel):
    """All circuit breakers registered in this process."""

    breakers: dict[str, BreakerStatus] = Field(default_factory=dict)
