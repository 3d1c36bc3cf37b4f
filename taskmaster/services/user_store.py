"""Credential store: persistence for user records.

Every mutation that races with other requests for the same user is a single
conditional UPDATE, so concurrent requests cannot double-count a failed login,
reuse a reset token, or overwrite a password changed in between.
"""

from datetime import datetime

from sqlalchemy import and_, case, null, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskmaster.errors import DuplicateEmailError
from taskmaster.models.user import User
from taskmaster.services.validation import normalize_email


class UserStore:
    """Reads and writes User rows through one database session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create_user(self, email: str, name: str, password_hash: str) -> User:
        """Insert a new user. Raises DuplicateEmailError if the email is taken."""
        user = User(
            email=normalize_email(email),
            name=name.strip(),
            password_hash=password_hash,
            password_version=1,
            failed_login_attempts=0,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEmailError(user.email) from e
        self.db.refresh(user)
        return user

    def find_by_email(self, email: str) -> User | None:
        return self.db.scalars(select(User).where(User.email == normalize_email(email))).first()

    def find_by_id(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def find_by_reset_token(self, token: str, now: datetime) -> User | None:
        """Find the user holding this reset token, ignoring expired tokens."""
        stmt = select(User).where(
            User.reset_token == token,
            User.reset_token_expires_at.is_not(None),
            User.reset_token_expires_at > now,
        )
        return self.db.scalars(stmt).first()

    def save(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def _conditional_update(self, *criteria, **values) -> bool:
        stmt = update(User).where(*criteria).values(**values).execution_options(synchronize_session=False)
        result = self.db.execute(stmt)
        self.db.commit()
        return result.rowcount == 1

    def record_failed_login(self, user_id: int, now: datetime, threshold: int, lock_until: datetime) -> bool:
        """Count a failed login and lock the account once the threshold is reached.

        A failure while the account is still locked changes nothing and returns
        False. The first failure after a lock has expired starts counting from 1.
        """
        stale_lock = and_(User.lock_until.is_not(None), User.lock_until <= now)
        attempts = case((stale_lock, 1), else_=User.failed_login_attempts + 1)
        return self._conditional_update(
            User.id == user_id,
            or_(User.lock_until.is_(None), User.lock_until <= now),
            failed_login_attempts=attempts,
            lock_until=case((attempts >= threshold, lock_until), else_=null()),
        )

    def record_successful_login(self, user_id: int, now: datetime) -> bool:
        return self._conditional_update(
            User.id == user_id,
            failed_login_attempts=0,
            lock_until=None,
            last_login_at=now,
        )

    def set_reset_token(self, user_id: int, token: str, expires_at: datetime) -> bool:
        """Store a reset token, replacing any earlier one."""
        return self._conditional_update(
            User.id == user_id,
            reset_token=token,
            reset_token_expires_at=expires_at,
        )

    def clear_reset_token(self, user_id: int) -> bool:
        return self._conditional_update(
            User.id == user_id,
            reset_token=None,
            reset_token_expires_at=None,
        )

    def replace_password(self, user_id: int, expected_hash: str, new_hash: str) -> bool:
        """Swap the password hash if it is still the one the caller verified against."""
        return self._conditional_update(
            User.id == user_id,
            User.password_hash == expected_hash,
            password_hash=new_hash,
            password_version=User.password_version + 1,
        )

    def reset_password_with_token(self, token: str, now: datetime, new_hash: str) -> bool:
        """Consume a live reset token and replace the password in one statement."""
        return self._conditional_update(
            User.reset_token == token,
            User.reset_token_expires_at.is_not(None),
            User.reset_token_expires_at > now,
            password_hash=new_hash,
            password_version=User.password_version + 1,
            reset_token=None,
            reset_token_expires_at=None,
            failed_login_attempts=0,
            lock_until=None,
        )
