"""Password reset token lifecycle."""

import secrets
from datetime import timedelta

from taskmaster.clock import Clock, utcnow
from taskmaster.errors import InvalidOrExpiredTokenError
from taskmaster.models.user import User
from taskmaster.services.user_store import UserStore

RESET_TOKEN_BYTES = 32


class ResetTokenManager:
    """Issues, validates and consumes single-use reset tokens stored on the user row."""

    def __init__(self, ttl_minutes: int = 60, clock: Clock = utcnow) -> None:
        self.ttl = timedelta(minutes=ttl_minutes)
        self.clock = clock

    def issue(self, store: UserStore, user: User) -> str:
        """Generate a token, replacing any earlier one, and return the raw value."""
        token = secrets.token_hex(RESET_TOKEN_BYTES)
        store.set_reset_token(user.id, token, self.clock() + self.ttl)
        return token

    def validate(self, store: UserStore, token: str) -> User:
        """Return the token's owner. Unknown and expired tokens fail the same way."""
        user = store.find_by_reset_token(token, self.clock()) if token else None
        if user is None:
            raise InvalidOrExpiredTokenError()
        return user

    def consume(self, store: UserStore, token: str, new_password_hash: str) -> None:
        """Clear the token and install the new password hash atomically.

        Raises InvalidOrExpiredTokenError if another request consumed the token
        first or it expired after validation.
        """
        if not store.reset_password_with_token(token, self.clock(), new_password_hash):
            raise InvalidOrExpiredTokenError()
