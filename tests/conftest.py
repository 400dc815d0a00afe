"""
Shared fixtures: fixed clocks, in-memory storage and an authenticated API client
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from sitepulse.config import Settings, get_settings
from sitepulse.main import create_app
from sitepulse.rate_limit import AdmissionLimiter
from sitepulse.store import InMemoryDayStore
from sitepulse.tracking import TrackingService


class FixedClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store():
    return InMemoryDayStore()


@pytest.fixture
def service(store, clock):
    return TrackingService(store, clock=clock, min_visit_ms=1000)


def make_token(user_id: str = "user-1") -> str:
    settings = get_settings()
    return jwt.encode(
        {"sub": user_id, "email": f"{user_id}@example.com"},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )


def auth_headers(user_id: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def app_settings():
    return Settings(STORAGE_BACKEND="memory", RATE_LIMIT_CLEANUP_PROBABILITY=0.0)


@pytest.fixture
def limiters():
    return {
        scope: AdmissionLimiter(max_requests=1000, window_ms=60_000, cleanup_probability=0.0, name=scope)
        for scope in ("tracking", "reports", "sync", "users")
    }


@pytest.fixture
def client(app_settings, service, limiters):
    app = create_app(app_settings, tracking_service=service, limiters=limiters)
    with TestClient(app) as test_client:
        test_client.headers.update(auth_headers())
        yield test_client


@pytest.fixture
def today() -> date:
    return NOW.date()
