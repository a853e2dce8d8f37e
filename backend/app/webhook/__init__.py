"""
PURPOSE: Inbound payment notification authentication and audit for the gateway.
"""

from app.webhook.authenticator import (
    InboundNotification,
    MalformedNotification,
    VerificationResult,
    WebhookAuthenticator,
    canonicalize_fields,
    compute_signature,
    parse_fields,
)
from app.webhook.processor import WebhookProcessor

__all__ = [
    "InboundNotification",
    "MalformedNotification",
    "VerificationResult",
    "WebhookAuthenticator",
    "WebhookProcessor",
    "canonicalize_fields",
    "compute_signature",
    "parse_fields",
]
