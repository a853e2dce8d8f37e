"""
Pydantic v2 schemas for the Checkout Relay gateway API.

This module exports all schema classes used throughout the API
for request/response validation and documentation.
"""

from .liveness import CheckResponse, HeartbeatAck, HeartbeatRequest
from .system import HealthCheck, VersionInfo, WebhookStatus

__all__ = [
    # Liveness schemas
    "HeartbeatRequest",
    "HeartbeatAck",
    "CheckResponse",
    # System schemas
    "HealthCheck",
    "VersionInfo",
    "WebhookStatus",
]
