"""
Liveness Pydantic schemas for the gateway API.

Wire names keep the camelCase used by existing clients (sessionId).
"""

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class HeartbeatRequest(BaseModel):
    """
    Heartbeat request body.

    Attributes:
        sessionId: Non-empty client-supplied session token
    """

    model_config = ConfigDict(extra="ignore")

    sessionId: StrictStr = Field(..., min_length=1)


class HeartbeatAck(BaseModel):
    """Heartbeat acknowledgement."""

    ok: bool = True


class CheckResponse(BaseModel):
    """
    Liveness check result.

    Attributes:
        trigger: True exactly once, when the session has just timed out
    """

    trigger: bool
