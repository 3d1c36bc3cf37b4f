"""JWT Token Service."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from taskmaster.clock import Clock, utcnow
from taskmaster.config import Settings, get_settings


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a session token."""

    user_id: int
    password_version: int
    expires_at: datetime


class JWTService:
    """Handles JWT token creation and validation."""

    def __init__(self, settings: Settings | None = None, clock: Clock = utcnow) -> None:
        settings = settings or get_settings()
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_minutes = settings.JWT_EXPIRE_MINUTES
        self.clock = clock

    def create_token(self, user_id: int, password_version: int) -> str:
        """Create a JWT token binding the user to their current password version."""
        now = self.clock()
        payload = {
            "sub": str(user_id),
            "pv": password_version,
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> TokenClaims | None:
        """Decode and validate a JWT token. Returns None if invalid, expired or malformed."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

        try:
            user_id = int(payload["sub"])
            password_version = payload["pv"]
            expires_at = datetime.fromtimestamp(int(payload["exp"]), timezone.utc).replace(tzinfo=None)
        except (KeyError, TypeError, ValueError):
            return None
        if not isinstance(password_version, int) or isinstance(password_version, bool):
            return None

        return TokenClaims(user_id=user_id, password_version=password_version, expires_at=expires_at)

    def is_token_valid(self, token: str) -> bool:
        """Check if a token is valid."""
        return self.decode_token(token) is not None
