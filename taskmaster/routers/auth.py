"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from taskmaster.database import get_db
from taskmaster.dependencies import CurrentUser, get_auth_service, get_current_user
from taskmaster.errors import AuthError, AuthFailure, envelope
from taskmaster.rate_limit import limiter
from taskmaster.schemas.auth import (
    AuthData,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdateProfileRequest,
    UserPublic,
)
from taskmaster.services.auth import AuthResult, AuthService

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _raise_for_failure(result: AuthResult) -> None:
    """Convert a failed AuthResult into an AuthError for the envelope handler."""
    if result.success:
        return
    headers = None
    if result.failure is AuthFailure.ACCOUNT_LOCKED and result.data:
        headers = {"Retry-After": str(result.data["retry_after_seconds"])}
    raise AuthError(result.failure, result.message, data=result.data, headers=headers)


def _session_payload(result: AuthResult) -> dict:
    return AuthData(token=result.token, user=UserPublic.model_validate(result.user)).model_dump(mode="json")


def _user_payload(result: AuthResult) -> dict:
    return {"user": UserPublic.model_validate(result.user).model_dump(mode="json")}


@router.post("/signup", status_code=201)
@limiter.limit("5/minute")
def signup(
    request: Request,
    body: SignupRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Register a new user account and receive a session token."""
    result = auth_service.signup(db, body.name, body.email, body.password)
    _raise_for_failure(result)
    return envelope(True, result.message, _session_payload(result))


@router.post("/login")
@limiter.limit("10/minute")
def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Authenticate and receive a JWT token."""
    result = auth_service.login(db, body.email, body.password)
    _raise_for_failure(result)
    return envelope(True, result.message, _session_payload(result))


@router.post("/logout")
def logout(auth_service: AuthService = Depends(get_auth_service)) -> dict:
    """Acknowledge logout. The client discards its token."""
    result = auth_service.logout()
    return envelope(True, result.message)


@router.get("/profile")
def get_profile(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Return the authenticated user's profile."""
    result = auth_service.get_profile(db, user.user_id)
    _raise_for_failure(result)
    return envelope(True, result.message, _user_payload(result))


@router.put("/update")
def update_profile(
    body: UpdateProfileRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Update the display name."""
    result = auth_service.update_profile(db, user.user_id, body.name)
    _raise_for_failure(result)
    return envelope(True, result.message, _user_payload(result))


@router.put("/change-password")
def change_password(
    body: ChangePasswordRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Change password. Every previously issued token stops working; a new one is returned."""
    result = auth_service.change_password(db, user.user_id, body.current_password, body.new_password)
    _raise_for_failure(result)
    return envelope(True, result.message, _session_payload(result))


@router.post("/forgot-password")
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Request a password reset link."""
    result = auth_service.forgot_password(db, body.email)
    _raise_for_failure(result)
    return envelope(True, result.message, result.data)


@router.post("/reset-password/{token}")
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    token: str,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Reset password using a valid token."""
    result = auth_service.reset_password(db, token, body.password)
    _raise_for_failure(result)
    return envelope(True, result.message)
