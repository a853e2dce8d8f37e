"""
PURPOSE: Main FastAPI application factory and lifecycle management for the Checkout Relay gateway.

Initializes the FastAPI application with:
- Webhook authenticator, audit processor and liveness tracker owned by app.state
- All API routers (system, webhook, liveness)
- CORS and rate limiting middleware
- Exception handlers mapping core errors to HTTP responses
- Startup/shutdown logging
- Metadata from version.json

The factory refuses to build an application without a webhook secret, so a
misconfigured process exits at import time instead of accepting unsigned
notifications.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api import api_router
from app.config.settings import Settings, settings
from app.core.errors import AuthenticationFailure, InputValidationError
from app.core.rate_limit import limiter
from app.liveness.tracker import LivenessTracker
from app.utils.logger import get_logger, setup_logging
from app.version import get_version
from app.webhook.authenticator import WebhookAuthenticator
from app.webhook.processor import WebhookProcessor


logger = get_logger(__name__)


# ════════════════════════════════════════════════════════════════
# Lifecycle Events
# ════════════════════════════════════════════════════════════════


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    PURPOSE: Log startup and shutdown of the gateway.

    CALLED BY: FastAPI during application startup and shutdown

    The liveness registry is in-memory only: it starts empty and is dropped
    on shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    app_settings: Settings = app.state.settings
    logger.info(
        "application_startup_complete",
        version=app.version,
        app_env=app_settings.APP_ENV,
        webhook_policy=app_settings.WEBHOOK_CANONICALIZATION,
        heartbeat_timeout_ms=app_settings.HEARTBEAT_TIMEOUT_MS,
    )

    yield

    logger.info(
        "application_shutdown_complete",
        tracked_sessions=app.state.liveness_tracker.tracked_count(),
    )


# ════════════════════════════════════════════════════════════════
# Exception Handlers
# ════════════════════════════════════════════════════════════════


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    PURPOSE: Answer malformed request bodies and query strings with HTTP 400.

    CALLED BY: FastAPI when request validation fails

    Args:
        request: HTTP request that failed validation
        exc: RequestValidationError with validation details

    Returns:
        JSONResponse: Formatted error response with validation details
    """
    logger.info(
        "request_validation_failed",
        path=request.url.path,
        method=request.method,
        error_count=len(exc.errors())
    )

    safe_errors = jsonable_encoder(
        exc.errors(),
        custom_encoder={
            ValueError: lambda e: str(e),
            Exception: lambda e: str(e),
        },
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "status": "error",
            "detail": "Request validation failed",
            "errors": safe_errors,
        },
    )


async def input_validation_handler(
    request: Request,
    exc: InputValidationError
) -> JSONResponse:
    """
    PURPOSE: Answer caller input rejected by the core with HTTP 400.

    CALLED BY: FastAPI when a route raises InputValidationError
    """
    logger.info(
        "input_validation_failed",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"status": "error", "detail": str(exc)},
    )


async def authentication_failure_handler(
    request: Request,
    exc: AuthenticationFailure
) -> JSONResponse:
    """
    PURPOSE: Answer failed webhook signature checks with HTTP 403.

    The audit record is written by the webhook processor before this runs.

    CALLED BY: FastAPI when a route raises AuthenticationFailure
    """
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"status": "error", "detail": str(exc) or "Invalid signature"},
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    PURPOSE: Handle unexpected exceptions with logging and safe error response.

    CALLED BY: FastAPI exception handler middleware

    Args:
        request: HTTP request that raised exception
        exc: Exception that was raised

    Returns:
        JSONResponse: Safe error response without exposing internals
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exception_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "detail": "Internal server error",
        },
    )


# ════════════════════════════════════════════════════════════════
# FastAPI Application Factory
# ════════════════════════════════════════════════════════════════


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    PURPOSE: Create and configure FastAPI application with all routers, middleware, and handlers.

    CALLED BY: Module import (uvicorn entrypoint) and tests

    Args:
        app_settings: Settings to build the app with; defaults to the
            environment-loaded module settings.

    Returns:
        FastAPI: Configured FastAPI application ready to run

    Raises:
        ConfigurationError: If no webhook secret is configured or the
            canonicalization policy is unknown.
    """
    app_settings = app_settings or settings

    setup_logging(app_settings.LOG_LEVEL)

    # Fail fast: never serve webhook traffic without a secret
    app_settings.validate_webhook_config()

    version = get_version().get("version", "unknown")

    app = FastAPI(
        title="Checkout Relay",
        description="Payment notification verification and session liveness gateway",
        version=version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # ────────────────────────────────────────────────────────────
    # Core components (one set per application instance)
    # ────────────────────────────────────────────────────────────

    app.state.settings = app_settings
    app.state.webhook_authenticator = WebhookAuthenticator(
        secret=app_settings.WEBHOOK_SECRET.get_secret_value(),
        policy=app_settings.WEBHOOK_CANONICALIZATION,
        signature_field=app_settings.WEBHOOK_SIGNATURE_FIELD,
    )
    app.state.webhook_processor = WebhookProcessor(policy=app_settings.WEBHOOK_CANONICALIZATION)
    app.state.liveness_tracker = LivenessTracker(
        timeout_seconds=app_settings.heartbeat_timeout_seconds,
    )

    # ────────────────────────────────────────────────────────────
    # Middleware
    # ────────────────────────────────────────────────────────────

    limiter.enabled = app_settings.RATE_LIMIT_ENABLED
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", app_settings.WEBHOOK_SIGNATURE_HEADER],
    )

    # ────────────────────────────────────────────────────────────
    # Routes
    # ────────────────────────────────────────────────────────────

    app.include_router(api_router)

    # ────────────────────────────────────────────────────────────
    # Exception Handlers
    # ────────────────────────────────────────────────────────────

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InputValidationError, input_validation_handler)
    app.add_exception_handler(AuthenticationFailure, authentication_failure_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info(
        "fastapi_application_created",
        title=app.title,
        version=version,
        webhook_policy=app_settings.WEBHOOK_CANONICALIZATION,
    )

    return app


# Create the application
app = create_app()


if __name__ == "__main__":
    """
    PURPOSE: Run FastAPI application with Uvicorn server.

    Usage:
        python -m app.main
        OR
        uvicorn app.main:app --host 0.0.0.0 --port 3000
    """
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
