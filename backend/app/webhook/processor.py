"""
PURPOSE: Audit trail for inbound payment notifications.

Runs after the authenticator has decided: verified notifications are logged
and kept in a short in-memory history, rejected ones are recorded for audit
without their payload. Exposes counters for the status endpoint.

CALLED BY:
    - app/api/routes_webhook.py (POST /webhook, GET /webhook/status)
"""

import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from app.utils.logger import get_logger

logger = get_logger(__name__)

# Maximum number of verified notifications to retain in the ring buffer
MAX_NOTIFICATION_HISTORY = 100

# Fields worth surfacing in logs and history; everything else stays out
_SUMMARY_FIELDS = ("payment_id", "payment_request_id", "reference_number", "status", "amount", "currency")


class WebhookProcessor:
    """
    PURPOSE: Records the outcome of every webhook verification.

    Attributes:
        _history: Deque of the last MAX_NOTIFICATION_HISTORY verified summaries.
        _total_verified: Count of verified notifications since start.
        _total_rejected: Count of rejected notifications since start.
        _last_verified_at: ISO-8601 timestamp of the most recent verified notification.
        _last_rejected_at: ISO-8601 timestamp of the most recent rejection.
        _lock: Guards counters and history across worker threads.
    """

    def __init__(self, policy: str) -> None:
        """
        PURPOSE: Initialise the processor with empty state.

        Args:
            policy: Canonicalization policy in force, reported by get_status().
        """
        self._policy = policy
        self._history: deque = deque(maxlen=MAX_NOTIFICATION_HISTORY)
        self._total_verified: int = 0
        self._total_rejected: int = 0
        self._last_verified_at: Optional[str] = None
        self._last_rejected_at: Optional[str] = None
        self._lock = threading.Lock()

    # ════════════════════════════════════════════════════════════════
    # Public API
    # ════════════════════════════════════════════════════════════════

    def record_verified(self, fields: Optional[Mapping[str, Any]], body_size: int) -> Dict[str, Any]:
        """
        PURPOSE: Accept a verified notification as trusted input.

        CALLED BY: POST /webhook route handler after VERIFIED

        Args:
            fields:    Parsed field set, or None under the raw_body policy.
            body_size: Length of the raw body in bytes.

        Returns:
            dict: Summary entry stored in history (notification_id, received_at, ...).
        """
        now_iso = datetime.now(timezone.utc).isoformat()
        summary: Dict[str, Any] = {
            "notification_id": str(uuid4()),
            "received_at": now_iso,
            "policy": self._policy,
            "body_size": body_size,
        }
        if fields:
            summary["field_names"] = sorted(fields)
            for name in _SUMMARY_FIELDS:
                if name in fields:
                    summary[name] = fields[name]

        with self._lock:
            self._history.appendleft(summary)
            self._total_verified += 1
            self._last_verified_at = now_iso

        logger.info(
            "webhook_notification_verified",
            notification_id=summary["notification_id"],
            policy=self._policy,
            status=summary.get("status"),
            reference_number=summary.get("reference_number"),
        )
        return summary

    def record_rejected(
        self,
        reason: str,
        client_ip: Optional[str] = None,
        has_signature: bool = False,
    ) -> None:
        """
        PURPOSE: Record a failed verification for audit.

        Neither the payload, the claimed signature nor the expected digest is
        logged.

        CALLED BY: POST /webhook route handler after REJECTED

        Args:
            reason:        Short machine-readable reason.
            client_ip:     Remote address of the caller.
            has_signature: Whether any signature was supplied at all.
        """
        now_iso = datetime.now(timezone.utc).isoformat()
        with self._lock:
            self._total_rejected += 1
            self._last_rejected_at = now_iso

        logger.warning(
            "webhook_signature_rejected",
            reason=reason,
            policy=self._policy,
            client_ip=client_ip,
            has_signature=has_signature,
        )

    def get_history(self, limit: int = 50) -> List[Dict[str, Any]]:
        """
        PURPOSE: Return recent verified notification summaries, newest first.

        Args:
            limit: Maximum number of entries (capped at MAX_NOTIFICATION_HISTORY).

        Returns:
            list: Summary dicts in reverse-chronological order.
        """
        cap = min(limit, MAX_NOTIFICATION_HISTORY)
        with self._lock:
            return list(self._history)[:cap]

    def get_status(self) -> Dict[str, Any]:
        """
        PURPOSE: Return counters for the status endpoint.

        Returns:
            dict: {
                policy, total_verified, total_rejected,
                last_verified_at, last_rejected_at, history_count
            }
        """
        with self._lock:
            return {
                "policy": self._policy,
                "total_verified": self._total_verified,
                "total_rejected": self._total_rejected,
                "last_verified_at": self._last_verified_at,
                "last_rejected_at": self._last_rejected_at,
                "history_count": len(self._history),
            }
