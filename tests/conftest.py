"""Pytest configuration and fixtures."""

import os

# Cheap hashing and a fixed secret for the whole test session; must be set before settings load.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("APP_ENV", "test")

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from taskmaster.clock import utcnow  # noqa: E402
from taskmaster.config import Settings  # noqa: E402
from taskmaster.database import Base, get_db  # noqa: E402
from taskmaster.models.task import Task  # noqa: E402, F401
from taskmaster.models.user import User  # noqa: E402, F401
from taskmaster.services.auth import AuthService  # noqa: E402

TEST_PASSWORD = "Passw0rd!"


class FakeClock:
    """Controllable clock; starts at the real current time so JWT expiry checks still line up."""

    def __init__(self) -> None:
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock()


@pytest.fixture(name="settings")
def settings_fixture() -> Settings:
    return Settings()


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(name="auth_service")
def auth_service_fixture(settings: Settings, clock: FakeClock) -> AuthService:
    return AuthService.from_settings(settings, clock=clock)


@pytest.fixture(name="app")
def app_fixture(settings: Settings, clock: FakeClock, db_session: Session):
    """Build an app whose DB dependency points at the test session."""
    from main import create_app

    app = create_app(settings, clock=clock)

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture(name="client")
def client_fixture(app):
    """Create a test client with rate limiting disabled."""
    from taskmaster.rate_limit import limiter

    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True


@pytest.fixture(name="test_user")
def test_user_fixture(app, db_session: Session):
    """Create a test user and return its data and session token."""
    result = app.state.auth_service.signup(db_session, "Test User", "test@example.com", TEST_PASSWORD)
    assert result.success, result.message

    return {
        "user_id": result.user.id,
        "email": result.user.email,
        "name": result.user.name,
        "password": TEST_PASSWORD,
        "token": result.token,
    }
