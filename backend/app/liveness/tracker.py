"""
PURPOSE: Dead-man's switch for client sessions.

Clients heartbeat periodically; a poller asks whether a session has gone
quiet. A session that has been silent for longer than the timeout is reported
exactly once and then forgotten, so the next check reads as untracked until a
new heartbeat arrives.

Timeouts are evaluated lazily at check time. There is no background sweep.
"""

import threading
import time
from typing import Callable, Dict, Optional

from app.core.errors import InputValidationError
from app.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 3.5


def _validate_session_id(session_id: object) -> str:
    if not isinstance(session_id, str) or not session_id:
        raise InputValidationError("sessionId must be a non-empty string")
    return session_id


class LivenessTracker:
    """
    PURPOSE: In-memory registry of session_id → last heartbeat time.

    Two externally meaningful states per session: alive (entry present,
    within the window) and untracked (no entry). The only observable
    transition is alive → untracked via timeout, reported as check() == True.

    CALLED BY: POST /heartbeat and GET /check (via app.state.liveness_tracker)

    Attributes:
        _last_seen: session_id → monotonic timestamp of the latest heartbeat.
        _timeout: Silence window in seconds; a gap strictly greater triggers.
        _clock: Monotonic time source in seconds.
        _lock: Makes heartbeat and check indivisible with respect to each other.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """
        PURPOSE: Create an empty registry.

        Args:
            timeout_seconds: Silence window (default 3.5 s).
            clock: Time source returning seconds; defaults to time.monotonic.
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self._last_seen: Dict[str, float] = {}
        self._timeout: float = timeout_seconds
        self._clock: Callable[[], float] = clock or time.monotonic
        self._lock = threading.Lock()

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def heartbeat(self, session_id: str) -> None:
        """
        PURPOSE: Record that the session is alive now.

        Upserts the latest timestamp; earlier heartbeats are not retained.

        Args:
            session_id: Non-empty client-supplied session token.

        Raises:
            InputValidationError: If session_id is not a non-empty string.
        """
        session_id = _validate_session_id(session_id)
        with self._lock:
            is_new = session_id not in self._last_seen
            self._last_seen[session_id] = self._clock()

        if is_new:
            logger.info("liveness_session_tracked", session_id=session_id)
        else:
            logger.debug("heartbeat_recorded", session_id=session_id)

    def check(self, session_id: str) -> bool:
        """
        PURPOSE: Report, exactly once per silent period, that a session timed out.

        Returns False for untracked sessions and for sessions still within
        the window. When the gap exceeds the timeout the entry is removed in
        the same critical section and True is returned; a second check
        without a new heartbeat then returns False.

        Args:
            session_id: Non-empty client-supplied session token.

        Returns:
            bool: True only on the alive → untracked transition.

        Raises:
            InputValidationError: If session_id is not a non-empty string.
        """
        session_id = _validate_session_id(session_id)
        with self._lock:
            last_seen = self._last_seen.get(session_id)
            if last_seen is None:
                return False

            silent_for = self._clock() - last_seen
            if silent_for <= self._timeout:
                return False

            del self._last_seen[session_id]

        logger.info(
            "liveness_timeout_triggered",
            session_id=session_id,
            silent_for_ms=round(silent_for * 1000),
            timeout_ms=round(self._timeout * 1000),
        )
        return True

    def tracked_count(self) -> int:
        """Number of sessions currently in the alive state."""
        with self._lock:
            return len(self._last_seen)

    def __len__(self) -> int:
        return self.tracked_count()

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._last_seen
