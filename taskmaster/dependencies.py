"""Authentication dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from taskmaster.database import get_db
from taskmaster.errors import AuthError, AuthFailure
from taskmaster.services.auth import AuthService
from taskmaster.services.jwt import JWTService
from taskmaster.services.task import TaskService
from taskmaster.services.user_store import UserStore

BEARER_PREFIX = "Bearer "


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: int
    email: str
    name: str
    password_version: int


def _unauthenticated(message: str, reason: str) -> AuthError:
    return AuthError(
        AuthFailure.UNAUTHENTICATED,
        message,
        data={"reason": reason},
        headers={"WWW-Authenticate": "Bearer"},
    )


class SessionValidator:
    """Turns a raw Authorization header into the live user it belongs to.

    Runs on every protected request with no caching: the user's password
    version is re-read each time so a password change takes effect immediately.
    """

    def __init__(self, jwt_service: JWTService) -> None:
        self.jwt_service = jwt_service

    def authenticate(self, db: Session, authorization: str | None) -> CurrentUser:
        """Raise AuthError(UNAUTHENTICATED) unless the bearer token is valid and current."""
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise _unauthenticated("Not authenticated", "missing_credentials")
        token = authorization[len(BEARER_PREFIX) :].strip()
        if not token:
            raise _unauthenticated("Not authenticated", "missing_credentials")

        claims = self.jwt_service.decode_token(token)
        if not claims:
            raise _unauthenticated("Invalid or expired token", "invalid_token")

        user = UserStore(db).find_by_id(claims.user_id)
        if not user:
            raise _unauthenticated("Invalid or expired token", "user_not_found")

        if claims.password_version != user.password_version:
            raise _unauthenticated("Session invalidated by password change. Please log in again.", "password_changed")

        return CurrentUser(
            user_id=user.id,
            email=user.email,
            name=user.name,
            password_version=user.password_version,
        )


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


def get_session_validator(request: Request) -> SessionValidator:
    return request.app.state.session_validator


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    validator: SessionValidator = Depends(get_session_validator),
) -> CurrentUser:
    """Extract and validate the user from the Bearer token. Raises 401 if invalid."""
    user = validator.authenticate(db, request.headers.get("Authorization"))
    request.state.user = user
    return user
