"""
PURPOSE: HMAC-SHA256 authenticity check for inbound payment notifications.

A notification is trusted only after the keyed hash of its canonical form,
computed with the server-held secret, matches the signature the sender
attached. Two canonicalization policies are supported because notification
sources disagree on what gets signed:

    raw_body       the exact request body bytes, before any parsing
    sorted_fields  every field except the signature, keys sorted ascending,
                   each rendered as key immediately followed by value,
                   concatenated with no separator

CALLED BY:
    - app/api/routes_webhook.py (POST /webhook)
"""

import hashlib
import hmac
import json
import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Union
from urllib.parse import parse_qsl

from app.config.settings import CANONICALIZATION_POLICIES, RAW_BODY_POLICY, SORTED_FIELDS_POLICY
from app.core.errors import ConfigurationError

FieldValue = Union[str, Sequence[str]]


class VerificationResult(str, Enum):
    """Outcome of a signature check. There is no partial-trust state."""

    VERIFIED = "verified"
    REJECTED = "rejected"


class MalformedNotification(ValueError):
    """Raised when a notification body cannot be canonicalized."""
    pass


@dataclass(frozen=True)
class InboundNotification:
    """
    PURPOSE: One webhook call as received, for the duration of a single verification.

    Attributes:
        raw_body:  Exact request body bytes.
        fields:    Parsed field set (sorted_fields policy); None for raw_body.
        signature: Claimed signature from the header or the in-body field.
    """

    raw_body: bytes
    signature: Optional[Any]
    fields: Optional[Mapping[str, FieldValue]] = field(default=None)


# ════════════════════════════════════════════════════════════════
# Canonicalization
# ════════════════════════════════════════════════════════════════


def _render_scalar(value: Any) -> str:
    """
    PURPOSE: Render one field value the way the sender's string concatenation does.

    Examples:
        "1"   → "1"
        True  → "true"
        None  → "null"
        2.0   → "2"
        1.5   → "1.5"
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _render_float(value)
    raise MalformedNotification(f"unsupported field value type: {type(value).__name__}")


def _render_float(value: float) -> str:
    """
    PURPOSE: Render a float the way JavaScript's Number-to-String does.

    Uses the shortest round-trip digits (as repr does) but switches to
    exponent form only below 1e-6 or from 1e21 upward.

    Examples:
        2.0     → "2"
        1e-07   → "1e-7"
        1e+21   → "1e+21"
        1.5e+22 → "1.5e+22"
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    # value == 0.<digits> * 10**n
    n = exponent + k

    if k <= n <= 21:
        rendered = digits + "0" * (n - k)
    elif 0 < n <= 21:
        rendered = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        rendered = "0." + "0" * -n + digits
    else:
        e = n - 1
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        rendered = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return sign + rendered


def _render_value(value: Any) -> str:
    # Repeated form keys and JSON arrays join with "," like Array.toString
    if isinstance(value, (list, tuple)):
        return ",".join(_render_scalar(item) for item in value)
    return _render_scalar(value)


def canonicalize_fields(fields: Mapping[str, Any], exclude: Optional[str] = None) -> bytes:
    """
    PURPOSE: Build the sorted-fields canonical representation.

    Keys are sorted in ascending code-point order and every pair is rendered
    as key immediately followed by value, with no separator.

    Args:
        fields:  Field set of the notification.
        exclude: Name of the signature field, left out of the canonical form.

    Returns:
        bytes: UTF-8 encoded canonical string, e.g. {b: "2", a: "1"} → b"a1b2".

    Raises:
        MalformedNotification: If a value is a nested object.
    """
    parts = [
        f"{key}{_render_value(fields[key])}"
        for key in sorted(fields)
        if key != exclude
    ]
    return "".join(parts).encode("utf-8")


def parse_fields(raw_body: bytes, content_type: str = "") -> dict[str, FieldValue]:
    """
    PURPOSE: Extract the field set from a notification body.

    JSON object bodies are used as-is. Anything else is decoded as
    application/x-www-form-urlencoded, keeping blank values (a bare "key"
    reads as key=""); a key that appears more than once collects its values
    into a list.

    CALLED BY: routes_webhook.receive_notification() for the sorted_fields policy

    Args:
        raw_body:     Exact request body bytes.
        content_type: Value of the Content-Type header.

    Returns:
        dict: Field name to value (str, or list of str for repeated keys).

    Raises:
        MalformedNotification: If the body is not a JSON object or valid form data.
    """
    if "json" in content_type.lower():
        try:
            payload = json.loads(raw_body)
        except (UnicodeDecodeError, ValueError, RecursionError) as e:
            raise MalformedNotification(f"invalid JSON body: {e}") from e
        if not isinstance(payload, dict):
            raise MalformedNotification("JSON body must be an object")
        return payload

    try:
        pairs = parse_qsl(raw_body.decode("utf-8"), keep_blank_values=True)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedNotification(f"invalid form body: {e}") from e

    fields: dict[str, FieldValue] = {}
    for key, value in pairs:
        if key not in fields:
            fields[key] = value
            continue
        existing = fields[key]
        if isinstance(existing, list):
            existing.append(value)
        else:
            fields[key] = [existing, value]
    return fields


# ════════════════════════════════════════════════════════════════
# Authenticator
# ════════════════════════════════════════════════════════════════


def compute_signature(secret: bytes, canonical: bytes) -> str:
    """Return the lowercase hex HMAC-SHA256 of canonical under secret."""
    return hmac.new(secret, canonical, hashlib.sha256).hexdigest()


def signatures_match(expected: str, claimed: Any) -> bool:
    """
    PURPOSE: Constant-time comparison of a computed digest with a claimed one.

    Both sides are compared as bytes through hmac.compare_digest, which
    returns False on length mismatch and does not stop at the first
    differing byte. Non-string or non-ASCII claims are simply a mismatch.

    Returns:
        bool: True only on an exact match.
    """
    if not isinstance(claimed, str) or not claimed:
        return False
    try:
        claimed_bytes = claimed.encode("ascii")
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(expected.encode("ascii"), claimed_bytes)


class WebhookAuthenticator:
    """
    PURPOSE: Accepts or rejects inbound notifications against the shared secret.

    Holds only immutable state (secret bytes, policy, signature field name),
    so a single instance is shared across concurrent requests without locking.

    CALLED BY: POST /webhook route handler (via app.state.webhook_authenticator)

    Attributes:
        policy:          "raw_body" or "sorted_fields".
        signature_field: In-body field excluded from the sorted-fields form.
    """

    def __init__(
        self,
        secret: Union[str, bytes],
        policy: str = SORTED_FIELDS_POLICY,
        signature_field: str = "hmac",
    ) -> None:
        """
        PURPOSE: Bind the secret and canonicalization policy.

        Args:
            secret:          Shared secret; must be non-empty.
            policy:          Canonicalization policy name.
            signature_field: Name of the in-body signature field.

        Raises:
            ConfigurationError: If the secret is empty or the policy is unknown.
        """
        if not secret:
            raise ConfigurationError("webhook secret must be a non-empty string")
        if policy not in CANONICALIZATION_POLICIES:
            raise ConfigurationError(f"unknown canonicalization policy: {policy!r}")

        self._secret: bytes = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
        self.policy: str = policy
        self.signature_field: str = signature_field

    def __repr__(self) -> str:
        return f"WebhookAuthenticator(policy={self.policy!r}, secret=***)"

    def canonicalize(self, notification: InboundNotification) -> bytes:
        """
        PURPOSE: Produce the bytes the sender signed, according to the policy.

        Raises:
            MalformedNotification: If sorted_fields is configured but the
                notification carries no usable field set.
        """
        if self.policy == RAW_BODY_POLICY:
            return notification.raw_body

        if notification.fields is None:
            raise MalformedNotification("sorted_fields policy requires a parsed field set")
        return canonicalize_fields(notification.fields, exclude=self.signature_field)

    def verify(self, notification: InboundNotification) -> VerificationResult:
        """
        PURPOSE: Decide whether the notification came from the holder of the secret.

        Missing or malformed signatures and uncanonicalizable bodies are
        rejections, never internal errors.

        Args:
            notification: The inbound notification.

        Returns:
            VerificationResult: VERIFIED on exact match, REJECTED otherwise.
        """
        try:
            canonical = self.canonicalize(notification)
        except MalformedNotification:
            return VerificationResult.REJECTED

        expected = compute_signature(self._secret, canonical)
        if signatures_match(expected, notification.signature):
            return VerificationResult.VERIFIED
        return VerificationResult.REJECTED
