"""
PURPOSE: API router initialization and exports for the Checkout Relay gateway.

This module aggregates all API routers (system, webhook, liveness) into a
single api_router that is included in the main FastAPI application. Paths are
served from the root because existing clients call /webhook, /heartbeat and
/check directly.
"""

from fastapi import APIRouter

from app.api.routes_liveness import router as liveness_router
from app.api.routes_system import router as system_router
from app.api.routes_webhook import router as webhook_router

# Create the main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(system_router, tags=["system"])
api_router.include_router(webhook_router, tags=["webhook"])
api_router.include_router(liveness_router, tags=["liveness"])

__all__ = ["api_router"]
