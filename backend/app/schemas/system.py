"""
System-level Pydantic schemas for the gateway API.

Handles serialization of health, versioning and webhook status.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class HealthCheck(BaseModel):
    """
    Root health check response.

    Attributes:
        status: Overall status ("ok")
        service: Service name
        version: Current service version
        uptime_seconds: Process uptime in seconds
        tracked_sessions: Sessions currently in the alive state
    """

    status: str
    service: str
    version: str
    uptime_seconds: float
    tracked_sessions: int

    @field_validator('uptime_seconds')
    @classmethod
    def validate_uptime(cls, v: float) -> float:
        """Validate uptime is non-negative."""
        if v < 0:
            raise ValueError('uptime_seconds must be non-negative')
        return v


class VersionInfo(BaseModel):
    """
    Service version information.

    Attributes:
        version: Semantic version string
        codename: Release codename
        updated_at: Last update timestamp
    """

    model_config = ConfigDict(from_attributes=True)

    version: str
    codename: str
    updated_at: str


class WebhookStatus(BaseModel):
    """
    Webhook verification counters.

    Attributes:
        policy: Canonicalization policy in force (raw_body / sorted_fields)
        total_verified: Notifications accepted since start
        total_rejected: Notifications rejected since start
        last_verified_at: ISO-8601 time of the latest accepted notification
        last_rejected_at: ISO-8601 time of the latest rejection
        history_count: Entries held in the in-memory history
    """

    policy: str
    total_verified: int
    total_rejected: int
    last_verified_at: Optional[str] = None
    last_rejected_at: Optional[str] = None
    history_count: int
