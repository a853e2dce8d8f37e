"""
PURPOSE: Session heartbeat and liveness check routes.

Clients POST /heartbeat while they are alive; a poller GETs /check and is
told trigger=true exactly once after the session has been silent for longer
than HEARTBEAT_TIMEOUT_MS.
"""

from fastapi import APIRouter, Depends, Query, Request

from app.core.rate_limit import limiter, LIVENESS_LIMIT
from app.liveness.tracker import LivenessTracker
from app.schemas import CheckResponse, HeartbeatAck, HeartbeatRequest

router = APIRouter(tags=["liveness"])


def get_liveness_tracker(request: Request) -> LivenessTracker:
    """Return the tracker owned by the running application."""
    return request.app.state.liveness_tracker


@router.post("/heartbeat", response_model=HeartbeatAck)
async def heartbeat(
    payload: HeartbeatRequest,
    tracker: LivenessTracker = Depends(get_liveness_tracker),
) -> HeartbeatAck:
    """
    PURPOSE: Mark the session alive now.

    Not rate limited: a dropped heartbeat would make a live session
    read as timed out on the next check.

    Raises:
        HTTP 400: sessionId missing, empty or not a string.
    """
    tracker.heartbeat(payload.sessionId)
    return HeartbeatAck(ok=True)


@router.get("/check", response_model=CheckResponse)
@limiter.limit(LIVENESS_LIMIT)
async def check(
    request: Request,
    session_id: str = Query(..., alias="sessionId", min_length=1),
    tracker: LivenessTracker = Depends(get_liveness_tracker),
) -> CheckResponse:
    """
    PURPOSE: Ask whether the session has just gone silent.

    Returns:
        CheckResponse: trigger=true once per silent period, false otherwise
            (including for sessions never seen).

    Raises:
        HTTP 400: sessionId query parameter missing or empty.
    """
    return CheckResponse(trigger=tracker.check(session_id))
