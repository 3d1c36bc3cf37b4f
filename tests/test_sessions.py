"""Tests for bearer-token session validation."""

import pytest
from sqlalchemy.orm import Session

from taskmaster.dependencies import SessionValidator
from taskmaster.errors import AuthError, AuthFailure
from taskmaster.models.user import User
from taskmaster.services.auth import AuthService
from taskmaster.services.user_store import UserStore

EMAIL = "session@example.com"
PASSWORD = "Passw0rd!"


@pytest.fixture(name="validator")
def validator_fixture(auth_service: AuthService) -> SessionValidator:
    return SessionValidator(auth_service.jwt_service)


@pytest.fixture(name="session_token")
def session_token_fixture(auth_service: AuthService, db_session: Session) -> str:
    result = auth_service.signup(db_session, "Session Tester", EMAIL, PASSWORD)
    assert result.success
    return result.token


def _reason(exc_info) -> str:
    assert exc_info.value.failure is AuthFailure.UNAUTHENTICATED
    assert exc_info.value.status_code == 401
    return exc_info.value.data["reason"]


class TestSessionValidator:
    def test_valid_token(self, validator: SessionValidator, db_session: Session, session_token: str):
        user = validator.authenticate(db_session, f"Bearer {session_token}")
        assert user.email == EMAIL
        assert user.password_version == 1

    @pytest.mark.parametrize("header", [None, "", "Bearer ", "Basic abc123", "bearer token"])
    def test_missing_or_malformed_header(self, validator: SessionValidator, db_session: Session, header):
        with pytest.raises(AuthError) as exc_info:
            validator.authenticate(db_session, header)
        assert _reason(exc_info) == "missing_credentials"

    def test_garbage_token(self, validator: SessionValidator, db_session: Session):
        with pytest.raises(AuthError) as exc_info:
            validator.authenticate(db_session, "Bearer not.a.jwt")
        assert _reason(exc_info) == "invalid_token"

    def test_deleted_user(self, validator: SessionValidator, db_session: Session, session_token: str):
        db_session.query(User).filter(User.email == EMAIL).delete()
        db_session.commit()

        with pytest.raises(AuthError) as exc_info:
            validator.authenticate(db_session, f"Bearer {session_token}")
        assert _reason(exc_info) == "user_not_found"

    def test_password_change_invalidates_old_token(
        self, auth_service: AuthService, validator: SessionValidator, db_session: Session, session_token: str
    ):
        user = validator.authenticate(db_session, f"Bearer {session_token}")
        result = auth_service.change_password(db_session, user.user_id, PASSWORD, "N3wPassword")
        assert result.success
        assert result.user.password_version == 2

        with pytest.raises(AuthError) as exc_info:
            validator.authenticate(db_session, f"Bearer {session_token}")
        assert _reason(exc_info) == "password_changed"
        assert "password change" in exc_info.value.message

        refreshed = validator.authenticate(db_session, f"Bearer {result.token}")
        assert refreshed.password_version == 2

    def test_every_session_invalidated(
        self, auth_service: AuthService, validator: SessionValidator, db_session: Session, session_token: str
    ):
        """Tokens from separate logins all die together on a password change."""
        other_login = auth_service.login(db_session, EMAIL, PASSWORD)
        assert other_login.success
        user = validator.authenticate(db_session, f"Bearer {other_login.token}")

        assert auth_service.change_password(db_session, user.user_id, PASSWORD, "N3wPassword").success

        for token in (session_token, other_login.token):
            with pytest.raises(AuthError):
                validator.authenticate(db_session, f"Bearer {token}")

    def test_profile_update_keeps_session(
        self, auth_service: AuthService, validator: SessionValidator, db_session: Session, session_token: str
    ):
        user = validator.authenticate(db_session, f"Bearer {session_token}")
        assert auth_service.update_profile(db_session, user.user_id, "New Name").success

        assert validator.authenticate(db_session, f"Bearer {session_token}").name == "New Name"

    def test_version_strictly_increases(self, auth_service: AuthService, db_session: Session, session_token: str):
        user = db_session.query(User).filter(User.email == EMAIL).first()
        versions = [user.password_version]

        assert auth_service.change_password(db_session, user.id, PASSWORD, "Second1pass").success
        versions.append(user.password_version)

        token = auth_service.reset_tokens.issue(UserStore(db_session), user)
        assert auth_service.reset_password(db_session, token, "Third1pass").success
        versions.append(user.password_version)

        assert versions == [1, 2, 3]
