"""Shared fixtures: temporary SQLite stores, a frozen clock and an API client."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from subtrack.core.app_factory import create_application
from subtrack.core.config import Settings
from subtrack.domain.models import Category, Frequency
from subtrack.infrastructure.repositories.subscription_repository import SubscriptionRepository
from subtrack.infrastructure.repositories.user_repository import UserRepository
from subtrack.services.subscription_service import SubscriptionService

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
TEST_JWT_SECRET = "test-secret-" + "x" * 52


class FrozenClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "subscriptions.db")


@pytest.fixture
def user_repository(db_path):
    return UserRepository(db_path)


@pytest.fixture
def subscription_repository(db_path):
    return SubscriptionRepository(db_path)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def service(subscription_repository, user_repository, clock):
    return SubscriptionService(subscription_repository, user_repository, clock=clock)


@pytest.fixture
def owner(user_repository):
    return user_repository.create(
        name="Ana", last_name="Torres", email="ana@example.com", password_hash="not-a-real-hash"
    )


@pytest.fixture
def other_user(user_repository):
    return user_repository.create(
        name="Luis", last_name="Ramos", email="luis@example.com", password_hash="not-a-real-hash"
    )


@pytest.fixture
def make_subscription(service, owner):
    """Create a subscription for ``owner`` with sensible defaults."""

    def _make(user=None, **overrides):
        data = {
            "name": "Netflix",
            "price": 10.0,
            "frequency": Frequency.MONTHLY,
            "category": Category.STREAMING,
            "start_date": NOW - timedelta(days=1),
        }
        data.update(overrides)
        return service.create_subscription((user or owner).id, data)

    return _make


@pytest.fixture
def settings(monkeypatch, tmp_path):
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.db"))
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    monkeypatch.delenv("UPCOMING_RENEWAL_DAYS", raising=False)
    return Settings()


@pytest.fixture
def client(settings):
    with TestClient(create_application(settings)) as test_client:
        yield test_client


def sign_up(client: TestClient, email: str = "maria@example.com", password: str = "secreto123") -> dict:
    response = client.post(
        "/api/v1/auth/sign-up",
        json={"name": "Maria", "last_name": "Lopez", "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth_headers(client):
    token = sign_up(client)["access_token"]
    return {"Authorization": f"Bearer {token}"}
