"""
PURPOSE: Session liveness tracking (heartbeat / edge-triggered timeout).
"""

from app.liveness.tracker import DEFAULT_TIMEOUT_SECONDS, LivenessTracker

__all__ = ["LivenessTracker", "DEFAULT_TIMEOUT_SECONDS"]
