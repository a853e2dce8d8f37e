"""
PURPOSE: Payment notification webhook routes for the Checkout Relay gateway.

The POST /webhook endpoint is intentionally PUBLIC — the payment provider
cannot attach bearer tokens to its notifications. Instead every call is
authenticated by an HMAC-SHA256 signature over the body, computed with the
shared secret, and carried either in a request header or in a body field.

CALLED BY:
    - Payment provider asynchronous notifications (POST, public)
    - Operators checking verification counters (GET /webhook/status)
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response, status

from app.config.settings import RAW_BODY_POLICY, Settings
from app.core.errors import AuthenticationFailure
from app.core.rate_limit import limiter, READ_LIMIT, WEBHOOK_LIMIT
from app.schemas import WebhookStatus
from app.utils.logger import get_logger
from app.webhook.authenticator import (
    InboundNotification,
    MalformedNotification,
    VerificationResult,
    WebhookAuthenticator,
    parse_fields,
)
from app.webhook.processor import WebhookProcessor

logger = get_logger(__name__)

router = APIRouter(tags=["webhook"])


# ════════════════════════════════════════════════════════════════
# Dependencies
# ════════════════════════════════════════════════════════════════


def get_webhook_authenticator(request: Request) -> WebhookAuthenticator:
    """Return the authenticator owned by the running application."""
    return request.app.state.webhook_authenticator


def get_webhook_processor(request: Request) -> WebhookProcessor:
    """Return the processor owned by the running application."""
    return request.app.state.webhook_processor


def get_app_settings(request: Request) -> Settings:
    """Return the settings the application was created with."""
    return request.app.state.settings


# ════════════════════════════════════════════════════════════════
# Internal Helpers
# ════════════════════════════════════════════════════════════════


def _build_notification(
    raw_body: bytes,
    content_type: str,
    header_signature: Optional[str],
    policy: str,
    signature_field: str,
) -> InboundNotification:
    """
    PURPOSE: Assemble the notification the authenticator verifies.

    Under raw_body the body bytes are passed through untouched and only the
    header can carry the signature. Under sorted_fields the body is parsed
    into its field set and the header takes precedence over the in-body
    signature field.

    Raises:
        MalformedNotification: If sorted_fields is configured and the body
            cannot be parsed.
    """
    if policy == RAW_BODY_POLICY:
        return InboundNotification(raw_body=raw_body, signature=header_signature)

    fields = parse_fields(raw_body, content_type)
    signature: Any = header_signature or fields.get(signature_field)
    return InboundNotification(raw_body=raw_body, signature=signature, fields=fields)


def _reject(
    processor: WebhookProcessor,
    request: Request,
    reason: str,
    has_signature: bool,
) -> AuthenticationFailure:
    """
    PURPOSE: Record the rejection for audit and build the error to raise.

    Returns:
        AuthenticationFailure: Raised by the caller; answered with HTTP 403.
    """
    client_ip = request.client.host if request.client else None
    processor.record_rejected(reason, client_ip=client_ip, has_signature=has_signature)
    return AuthenticationFailure("Invalid signature")


# ════════════════════════════════════════════════════════════════
# Public Inbound Endpoint
# ════════════════════════════════════════════════════════════════


@router.post("/webhook", status_code=status.HTTP_200_OK)
@limiter.limit(WEBHOOK_LIMIT)
async def receive_notification(
    request: Request,
    authenticator: WebhookAuthenticator = Depends(get_webhook_authenticator),
    processor: WebhookProcessor = Depends(get_webhook_processor),
    app_settings: Settings = Depends(get_app_settings),
) -> Response:
    """
    PURPOSE: Verify a payment notification before anything acts on it.

    The body is read as raw bytes before any parsing so the raw_body policy
    signs exactly what was sent.

    Args:
        request: FastAPI Request (also required by slowapi rate limiter).

    Returns:
        Response: 200 with an empty body when the signature verifies.

    Raises:
        HTTP 403: Missing, malformed or mismatching signature (payload discarded).
        HTTP 429: Rate limit exceeded.
    """
    raw_body = await request.body()
    header_signature = request.headers.get(app_settings.WEBHOOK_SIGNATURE_HEADER)

    logger.debug(
        "webhook_notification_received",
        policy=authenticator.policy,
        body_size=len(raw_body),
        has_header_signature=bool(header_signature),
    )

    try:
        notification = _build_notification(
            raw_body,
            request.headers.get("content-type", ""),
            header_signature,
            authenticator.policy,
            authenticator.signature_field,
        )
    except MalformedNotification:
        raise _reject(processor, request, "malformed_body", has_signature=bool(header_signature)) from None

    if not notification.signature:
        raise _reject(processor, request, "missing_signature", has_signature=False)

    result = authenticator.verify(notification)
    if result is not VerificationResult.VERIFIED:
        raise _reject(processor, request, "signature_mismatch", has_signature=True)

    processor.record_verified(notification.fields, body_size=len(raw_body))
    return Response(status_code=status.HTTP_200_OK)


# ════════════════════════════════════════════════════════════════
# Status Endpoint
# ════════════════════════════════════════════════════════════════


@router.get("/webhook/status", response_model=WebhookStatus)
@limiter.limit(READ_LIMIT)
async def get_webhook_status(
    request: Request,
    processor: WebhookProcessor = Depends(get_webhook_processor),
) -> WebhookStatus:
    """
    PURPOSE: Return verification counters for operators.

    Returns:
        WebhookStatus: policy, totals and last-event timestamps.
    """
    return WebhookStatus(**processor.get_status())
