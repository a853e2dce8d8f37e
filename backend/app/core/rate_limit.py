"""
PURPOSE: Rate limiting configuration for the gateway API using slowapi.

Provides a shared Limiter instance keyed by client IP address and
pre-defined rate limit strings for different endpoint categories:
    - WEBHOOK_LIMIT:   moderate (60/minute)  — inbound payment notifications
    - LIVENESS_LIMIT:  relaxed  (600/minute) — check polling (heartbeats are never limited)
    - READ_LIMIT:      relaxed  (60/minute)  — status, health, ping
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config.settings import settings

# Shared limiter instance, keyed by client IP
# create_app() re-applies RATE_LIMIT_ENABLED from the settings it is given
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

# ── Rate limit tiers ──────────────────────────────────────────
WEBHOOK_LIMIT = "60/minute"
# Pollers check well inside the 3.5 s window
LIVENESS_LIMIT = "600/minute"
READ_LIMIT = "60/minute"
