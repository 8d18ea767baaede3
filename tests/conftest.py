"""Pytest configuration and fixtures."""

import os
import tempfile

# Settings are read at import time, so the environment is set before any app import.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="accounts-uploads-"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("TOKEN_CLEANUP_ENABLED", "false")
os.environ.setdefault("MAIL_SUPPRESS_SEND", "true")

from datetime import timedelta  # noqa: E402
from unittest.mock import AsyncMock, patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from fastapi_mail import FastMail  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, enable_sqlite_foreign_keys, get_db, utcnow  # noqa: E402
from app.models.token import Token  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.passwords import hash_password  # noqa: E402

PASSWORD = "P4ssword"


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(name="session_factory")
def session_factory_fixture(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(name="db_session")
def db_session_fixture(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="outbox")
def outbox_fixture():
    """Capture outgoing mail instead of talking to an SMTP server."""
    with patch.object(FastMail, "send_message", new_callable=AsyncMock) as send_message:
        yield send_message


@pytest.fixture(name="upload_dir")
def upload_dir_fixture(tmp_path, monkeypatch):
    """Point profile image storage at a per-test directory."""
    from app.config import get_settings

    settings = get_settings()
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    profile = tmp_path / settings.PROFILE_DIR
    profile.mkdir()
    return profile


@pytest.fixture(name="client")
def client_fixture(db_session: Session, outbox):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


def add_users(db: Session, active: int, inactive: int = 0, first: int = 1) -> list[User]:
    """Insert ``user<first>..`` directly, active ones first."""
    password_hash = hash_password(PASSWORD)
    users = []
    for i in range(active + inactive):
        user = User(
            username=f"user{first + i}",
            email=f"user{first + i}@mail.com",
            password=password_hash,
            inactive=i >= active,
        )
        db.add(user)
        users.append(user)
    db.commit()
    for user in users:
        db.refresh(user)
    return users


def add_token(db: Session, user_id: int, value: str = "test-token", age: timedelta = timedelta(0)) -> Token:
    token = Token(token=value, user_id=user_id, last_used_at=utcnow() - age)
    db.add(token)
    db.commit()
    return token


@pytest.fixture(name="active_user")
def active_user_fixture(db_session: Session) -> User:
    return add_users(db_session, 1)[0]


@pytest.fixture(name="inactive_user")
def inactive_user_fixture(db_session: Session) -> User:
    return add_users(db_session, 0, 1)[0]


@pytest.fixture(name="auth_header")
def auth_header_fixture(client: TestClient, active_user: User) -> dict:
    """Log in as the active user and return the bearer header."""
    response = client.post("/api/1.0/auth", json={"email": active_user.email, "password": PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}
