"""Password hashing service."""

import bcrypt

from taskmaster.config import get_settings
from taskmaster.errors import PasswordHashingError

BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted bcrypt hashing with a configurable cost factor."""

    def __init__(self, rounds: int | None = None) -> None:
        self.rounds = rounds if rounds is not None else get_settings().BCRYPT_ROUNDS

    def hash(self, plaintext: str) -> str:
        """Hash a password. Raises PasswordHashingError if bcrypt fails."""
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")
        except (ValueError, TypeError) as e:
            raise PasswordHashingError("Password hashing failed") from e

    def verify(self, plaintext: str, password_hash: str) -> bool:
        """Check a password against a stored hash."""
        encoded = plaintext.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except (ValueError, TypeError) as e:
            raise PasswordHashingError("Password verification failed") from e
