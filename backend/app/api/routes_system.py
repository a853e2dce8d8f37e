"""
PURPOSE: System-level API routes for the Checkout Relay gateway.

Provides the root health check, version information and a debug echo
endpoint used by clients to confirm connectivity.
"""

import json
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request

from app.core.errors import InputValidationError
from app.core.rate_limit import limiter, READ_LIMIT
from app.schemas import HealthCheck, VersionInfo
from app.utils.logger import get_logger
from app.version import get_version

logger = get_logger(__name__)
router = APIRouter(tags=["system"])

_startup_time = time.time()


def _safe_version() -> Dict[str, Any]:
    try:
        return get_version()
    except (OSError, ValueError) as e:
        logger.warning("version_data_unavailable", error=str(e))
        return {}


# ════════════════════════════════════════════════════════════════
# Health Check (public, no auth required)
# ════════════════════════════════════════════════════════════════


@router.get("/", response_model=HealthCheck, tags=["health"])
@limiter.limit(READ_LIMIT)
async def health_check(request: Request) -> HealthCheck:
    """Service availability check for load balancers and deploy probes."""
    return HealthCheck(
        status="ok",
        service="Checkout Relay",
        version=_safe_version().get("version", "unknown"),
        uptime_seconds=round(time.time() - _startup_time, 1),
        tracked_sessions=request.app.state.liveness_tracker.tracked_count(),
    )


@router.get("/version", response_model=VersionInfo, tags=["version"])
@limiter.limit(READ_LIMIT)
async def get_service_version(request: Request) -> VersionInfo:
    """Retrieve service version information."""
    version_data = _safe_version()
    return VersionInfo(
        version=version_data.get("version", "unknown"),
        codename=version_data.get("codename", "Relay"),
        updated_at=version_data.get("updated_at", datetime.now(timezone.utc).isoformat()),
    )


# ════════════════════════════════════════════════════════════════
# Debug Echo
# ════════════════════════════════════════════════════════════════


@router.post("/ping")
@limiter.limit(READ_LIMIT)
async def ping(request: Request) -> Dict[str, Any]:
    """
    PURPOSE: Echo the JSON body back so clients can confirm the gateway is reachable.

    An empty body echoes as {}.

    Returns:
        dict: {"ok": true, "received": <parsed body>}

    Raises:
        HTTP 400: Body is not valid JSON.
    """
    raw_body = await request.body()
    if not raw_body.strip():
        received: Any = {}
    else:
        try:
            received = json.loads(raw_body)
        except ValueError as e:
            raise InputValidationError("Request body must be valid JSON") from e

    logger.info("ping_received", body_size=len(raw_body))
    return {"ok": True, "received": received}
