"""
PURPOSE: Pytest fixtures for Checkout Relay tests.

Provides shared test data and helpers including:
- Test configuration settings for both canonicalization policies
- A controllable clock for the liveness tracker
- FastAPI test clients wired to fresh, independent app instances
- Signing helpers that produce what the payment provider would send
"""

import hashlib
import hmac
import os

# The module-level app in app.main is built at import time and refuses to
# start without a secret.
os.environ.setdefault("WEBHOOK_SECRET", "conftest-secret")

import pytest
from fastapi.testclient import TestClient

from app.config.settings import Settings
from app.core.rate_limit import limiter
from app.liveness.tracker import LivenessTracker
from app.main import create_app

TEST_SECRET = "test-secret"


class FakeClock:
    """Monotonic clock driven by the test, in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, milliseconds: float) -> None:
        self.now += milliseconds / 1000.0


def sign(secret: str, data: bytes) -> str:
    """Hex HMAC-SHA256, as computed by the sender."""
    return hmac.new(secret.encode("utf-8"), data, hashlib.sha256).hexdigest()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """
    PURPOSE: Start every test with empty slowapi counters.

    The limiter is shared by every app instance in the process.
    """
    limiter.reset()
    yield


@pytest.fixture
def fake_clock():
    """
    PURPOSE: Controllable clock starting at T=1000 s.

    Returns:
        FakeClock: Call to read, advance_ms() to move forward.
    """
    return FakeClock()


@pytest.fixture
def tracker(fake_clock):
    """
    PURPOSE: Fresh LivenessTracker with the default 3500 ms window on the fake clock.

    Returns:
        LivenessTracker: Empty registry.
    """
    return LivenessTracker(timeout_seconds=3.5, clock=fake_clock)


@pytest.fixture
def test_settings():
    """
    PURPOSE: Settings override with test values (sorted_fields policy).

    Returns:
        Settings: Configuration object with test values.
    """
    return Settings(
        WEBHOOK_SECRET=TEST_SECRET,
        WEBHOOK_CANONICALIZATION="sorted_fields",
        WEBHOOK_SIGNATURE_HEADER="X-Signature",
        WEBHOOK_SIGNATURE_FIELD="hmac",
        HEARTBEAT_TIMEOUT_MS=3500,
        APP_ENV="test",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        RATE_LIMIT_ENABLED=True,
    )


@pytest.fixture
def raw_body_settings(test_settings):
    """
    PURPOSE: Same as test_settings with the raw_body policy.

    Returns:
        Settings: Configuration object with test values.
    """
    return test_settings.model_copy(update={"WEBHOOK_CANONICALIZATION": "raw_body"})


@pytest.fixture
def app(test_settings, fake_clock):
    """
    PURPOSE: Fresh application whose liveness tracker runs on the fake clock.

    Returns:
        FastAPI: Independent app instance (own registry, own counters).
    """
    application = create_app(test_settings)
    application.state.liveness_tracker = LivenessTracker(
        timeout_seconds=test_settings.heartbeat_timeout_seconds,
        clock=fake_clock,
    )
    return application


@pytest.fixture
def client(app):
    """
    PURPOSE: TestClient for the sorted_fields app, lifespan included.

    Yields:
        TestClient: HTTP client bound to the app.
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def raw_client(raw_body_settings):
    """
    PURPOSE: TestClient for an app configured with the raw_body policy.

    Yields:
        TestClient: HTTP client bound to the app.
    """
    with TestClient(create_app(raw_body_settings)) as test_client:
        yield test_client
