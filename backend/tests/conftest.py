"""
Shared fixtures for the YAAKE backend tests.

The environment is configured before the app is imported so settings,
password hashing and environment validation all see test values.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-the-yaake-suite-0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DISABLE_CSRF"] = "false"
os.environ["TRUST_PROXY"] = "false"
os.environ["SMTP_HOST"] = ""
os.environ["SENTRY_DSN"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_notifier
from app.core.rate_limit import limiter
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.services.accounts import AccountService
from app.services.user_store import UserStore

VALID_PASSWORD = "Test@123456"


class RecordingNotifier:
    """Stands in for EmailNotifier and remembers what it was asked to send."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.verification_emails: list[tuple[str, str]] = []
        self.welcome_emails: list[str] = []

    def send_verification_email(self, email: str, token: str) -> bool:
        self.verification_emails.append((email, token))
        return self.succeed

    def send_welcome_email(self, email: str) -> bool:
        self.welcome_emails.append(email)
        return self.succeed

    def last_verification_token(self, email: str) -> str:
        tokens = [token for sent_to, token in self.verification_emails if sent_to == email]
        assert tokens, f"no verification email sent to {email}"
        return tokens[-1]


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store(db_session):
    return UserStore(db_session)


@pytest.fixture
def service(store, notifier):
    return AccountService(store, notifier)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def raw_client(session_factory, notifier):
    """Test client without a CSRF token."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(raw_client):
    """Test client that already holds the CSRF cookie and echoes it as a header."""
    response = raw_client.get("/api/health")
    assert response.status_code == 200
    raw_client.headers["X-XSRF-Token"] = raw_client.cookies["XSRF-TOKEN"]
    return raw_client


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client, email="a@b.com", password=VALID_PASSWORD, **extra):
    payload = {"email": email, "password": password, "confirmPassword": password, **extra}
    return client.post("/api/auth/register", json=payload)


def create_guest(client, **payload):
    response = client.post("/api/auth/guest-register", json=payload or None)
    assert response.status_code == 201, response.json()
    return response.json()["data"]
