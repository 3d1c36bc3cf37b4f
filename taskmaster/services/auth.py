"""Authentication service."""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from taskmaster.clock import Clock, utcnow
from taskmaster.config import Settings, get_settings
from taskmaster.errors import (
    INTERNAL_ERROR_MESSAGE,
    AuthFailure,
    DuplicateEmailError,
    InvalidOrExpiredTokenError,
    PasswordHashingError,
)
from taskmaster.models.user import User
from taskmaster.services.jwt import JWTService
from taskmaster.services.lockout import LockoutPolicy, LockStatus
from taskmaster.services.passwords import PasswordHasher
from taskmaster.services.reset_tokens import ResetTokenManager
from taskmaster.services.user_store import UserStore
from taskmaster.services.validation import validate_email, validate_name, validate_password

logger = logging.getLogger("taskmaster")

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
INVALID_RESET_TOKEN_MESSAGE = "Invalid or expired reset link"
FORGOT_PASSWORD_MESSAGE = "If an account exists with that email, a password reset link has been sent."
DUPLICATE_EMAIL_MESSAGE = "An account with this email already exists"


@dataclass
class AuthResult:
    """Outcome of an auth operation. Expected failures are reported here, never raised."""

    success: bool
    message: str = ""
    failure: AuthFailure | None = None
    user: User | None = None
    token: str | None = None
    data: dict[str, Any] | None = None

    @classmethod
    def fail(cls, failure: AuthFailure, message: str, data: dict[str, Any] | None = None) -> "AuthResult":
        return cls(success=False, message=message, failure=failure, data=data)


class AuthService:
    """Handles signup, login and the password lifecycle."""

    def __init__(
        self,
        settings: Settings,
        hasher: PasswordHasher,
        jwt_service: JWTService,
        lockout: LockoutPolicy,
        reset_tokens: ResetTokenManager,
    ) -> None:
        self.settings = settings
        self.hasher = hasher
        self.jwt_service = jwt_service
        self.lockout = lockout
        self.reset_tokens = reset_tokens

    @classmethod
    def from_settings(cls, settings: Settings | None = None, clock: Clock = utcnow) -> "AuthService":
        settings = settings or get_settings()
        return cls(
            settings=settings,
            hasher=PasswordHasher(settings.BCRYPT_ROUNDS),
            jwt_service=JWTService(settings, clock=clock),
            lockout=LockoutPolicy(settings.LOCKOUT_THRESHOLD, settings.LOCKOUT_MINUTES, clock=clock),
            reset_tokens=ResetTokenManager(settings.RESET_TOKEN_TTL_MINUTES, clock=clock),
        )

    def _check_password_policy(self, password: str) -> str | None:
        return validate_password(password, self.settings.PASSWORD_MIN_LENGTH)

    def _internal_failure(self, operation: str) -> AuthResult:
        logger.exception("%s failed", operation)
        return AuthResult.fail(AuthFailure.INTERNAL, INTERNAL_ERROR_MESSAGE)

    def _locked(self, status: LockStatus) -> AuthResult:
        minutes = status.remaining_minutes
        return AuthResult.fail(
            AuthFailure.ACCOUNT_LOCKED,
            "Account is temporarily locked due to too many failed login attempts. "
            f"Try again in {minutes} minute{'s' if minutes != 1 else ''}.",
            data={"retry_after_seconds": status.remaining_seconds},
        )

    def signup(self, db: Session, name: str, email: str, password: str) -> AuthResult:
        """Register a new user and issue a session token."""
        error = validate_name(name) or validate_email(email) or self._check_password_policy(password)
        if error:
            return AuthResult.fail(AuthFailure.VALIDATION, error)

        store = UserStore(db)
        if store.find_by_email(email):
            return AuthResult.fail(AuthFailure.DUPLICATE_EMAIL, DUPLICATE_EMAIL_MESSAGE)

        try:
            password_hash = self.hasher.hash(password)
        except PasswordHashingError:
            return self._internal_failure("signup")

        try:
            user = store.create_user(email, name, password_hash)
        except DuplicateEmailError:
            return AuthResult.fail(AuthFailure.DUPLICATE_EMAIL, DUPLICATE_EMAIL_MESSAGE)

        logger.info("Registered account %s", user.id)
        token = self.jwt_service.create_token(user.id, user.password_version)
        return AuthResult(success=True, message="Account created successfully", user=user, token=token)

    def login(self, db: Session, email: str, password: str) -> AuthResult:
        """Authenticate by email and password, applying the lockout policy."""
        if not email or not password:
            return AuthResult.fail(AuthFailure.VALIDATION, "Email and password are required")

        store = UserStore(db)
        user = store.find_by_email(email)
        if not user:
            return AuthResult.fail(AuthFailure.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

        status = self.lockout.check(user)
        if status.locked:
            return self._locked(status)

        try:
            matched = self.hasher.verify(password, user.password_hash)
        except PasswordHashingError:
            return self._internal_failure("login")

        if not matched:
            self.lockout.register_failure(store, user)
            logger.info("Failed login for account %s", user.id)
            return AuthResult.fail(AuthFailure.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

        self.lockout.register_success(store, user)
        token = self.jwt_service.create_token(user.id, user.password_version)
        return AuthResult(success=True, message="Login successful", user=user, token=token)

    def get_profile(self, db: Session, user_id: int) -> AuthResult:
        user = UserStore(db).find_by_id(user_id)
        if not user:
            return AuthResult.fail(AuthFailure.NOT_FOUND, "User not found")
        return AuthResult(success=True, message="Profile retrieved", user=user)

    def update_profile(self, db: Session, user_id: int, name: str) -> AuthResult:
        """Change the display name. Sessions and password version are untouched."""
        error = validate_name(name)
        if error:
            return AuthResult.fail(AuthFailure.VALIDATION, error)

        store = UserStore(db)
        user = store.find_by_id(user_id)
        if not user:
            return AuthResult.fail(AuthFailure.NOT_FOUND, "User not found")

        user.name = name.strip()
        store.save(user)
        return AuthResult(success=True, message="Profile updated successfully", user=user)

    def change_password(self, db: Session, user_id: int, current_password: str, new_password: str) -> AuthResult:
        """Replace the password and bump the version, signing out every existing session.

        The caller receives a fresh token bound to the new version.
        """
        if not current_password:
            return AuthResult.fail(AuthFailure.VALIDATION, "Current password is required")

        store = UserStore(db)
        user = store.find_by_id(user_id)
        if not user:
            return AuthResult.fail(AuthFailure.NOT_FOUND, "User not found")

        observed_hash = user.password_hash
        try:
            matched = self.hasher.verify(current_password, observed_hash)
        except PasswordHashingError:
            return self._internal_failure("change_password")
        if not matched:
            return AuthResult.fail(AuthFailure.INVALID_CREDENTIALS, "Current password is incorrect")

        error = self._check_password_policy(new_password)
        if error:
            return AuthResult.fail(AuthFailure.VALIDATION, error)
        if new_password == current_password:
            return AuthResult.fail(AuthFailure.VALIDATION, "New password must be different from the current password")

        try:
            new_hash = self.hasher.hash(new_password)
        except PasswordHashingError:
            return self._internal_failure("change_password")

        if not store.replace_password(user.id, observed_hash, new_hash):
            # Someone else changed the password after we verified it.
            return AuthResult.fail(AuthFailure.INVALID_CREDENTIALS, "Current password is incorrect")

        db.refresh(user)
        logger.info("Password changed for account %s (version %s)", user.id, user.password_version)
        token = self.jwt_service.create_token(user.id, user.password_version)
        return AuthResult(
            success=True,
            message="Password changed successfully. All other sessions have been signed out.",
            user=user,
            token=token,
        )

    def forgot_password(self, db: Session, email: str) -> AuthResult:
        """Issue a reset token if the account exists.

        The response is the same whether or not the email is registered.
        """
        error = validate_email(email)
        if error:
            return AuthResult.fail(AuthFailure.VALIDATION, error)

        result = AuthResult(success=True, message=FORGOT_PASSWORD_MESSAGE)
        store = UserStore(db)
        user = store.find_by_email(email)
        if not user:
            return result

        token = self.reset_tokens.issue(store, user)
        if self.settings.reset_token_exposed:
            result.data = {"reset_token": token}
        if not self.settings.is_production:
            logger.info("PASSWORD RESET for account %s: /reset-password/%s", user.id, token)
        return result

    def reset_password(self, db: Session, token: str, new_password: str) -> AuthResult:
        """Set a new password using a reset token. The token works once."""
        store = UserStore(db)
        try:
            user = self.reset_tokens.validate(store, token)
        except InvalidOrExpiredTokenError:
            return AuthResult.fail(AuthFailure.INVALID_OR_EXPIRED_TOKEN, INVALID_RESET_TOKEN_MESSAGE)

        error = self._check_password_policy(new_password)
        if error:
            return AuthResult.fail(AuthFailure.VALIDATION, error)

        try:
            new_hash = self.hasher.hash(new_password)
        except PasswordHashingError:
            return self._internal_failure("reset_password")

        user_id = user.id
        try:
            self.reset_tokens.consume(store, token, new_hash)
        except InvalidOrExpiredTokenError:
            return AuthResult.fail(AuthFailure.INVALID_OR_EXPIRED_TOKEN, INVALID_RESET_TOKEN_MESSAGE)

        logger.info("Password reset completed for account %s", user_id)
        return AuthResult(success=True, message="Password reset successful. Please log in with your new password.")

    def logout(self) -> AuthResult:
        """Sessions are stateless; the client discards its token."""
        return AuthResult(success=True, message="Logged out successfully")
