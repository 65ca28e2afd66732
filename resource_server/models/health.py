"""Health check data models."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    """Health status response for the resource server."""

    status: str = Field(
        default="ok",
        description="Liveness status; always 'ok' when the process is serving",
        examples=["ok"],
    )
    token_cache: Literal["disabled", "connected", "unavailable"] = Field(
        default="disabled",
        description="State of the Redis token verification cache",
        examples=["connected"],
    )
