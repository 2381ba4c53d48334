"""
Shared fixtures.

- In-memory SQLite (StaticPool) so every session sees the same database
- A controllable clock for everything that reads "now"
- The completion API replaced by a fake; nothing leaves the process
"""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from study_helper.core.config import Settings
from study_helper.core.errors import UpstreamFailure
from study_helper.db.base import Base
from study_helper.db.session import build_engine, build_session_factory
from study_helper.main import create_app
from study_helper.utils.auth import PasswordHasher

TEST_PASSWORD = "secret123"


class FakeClock:
    def __init__(self, start: datetime = datetime(2026, 1, 5, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeCompletionClient:
    def __init__(self, result: str = "A short explanation."):
        self.result = result
        self.fail = False
        self.calls = []

    def complete(self, system_prompt: str, user_text: str) -> str:
        self.calls.append((system_prompt, user_text))
        if self.fail:
            raise UpstreamFailure()
        return self.result


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret",
        bcrypt_rounds=4,  # bcrypt minimum; keeps hashing fast
        throttle_enabled=False,
        groq_api_key="test-key",
    )


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def db():
    """Standalone session for service-level tests."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session: Session = build_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def completion():
    return FakeCompletionClient()


@pytest.fixture
def app(settings, clock, completion):
    return create_app(settings, clock=clock, completion_client=completion)


@pytest.fixture
def client(app):
    # Context manager runs startup, which creates the tables
    with TestClient(app) as test_client:
        yield test_client


def register(client, email="student@example.com", password=TEST_PASSWORD):
    response = client.post("/api/user/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(client):
    """A registered account: returns (token, headers, account payload)."""
    data = register(client)
    return data["token"], auth_headers(data["token"]), data["account"]
