"""User model."""

from sqlalchemy import Column, DateTime, Integer, String

from taskmaster.clock import utcnow
from taskmaster.database import Base


class User(Base):
    """Account holder and credential record."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    name = Column(String(64), nullable=False)
    password_hash = Column(String(256), nullable=False)
    password_version = Column(Integer, nullable=False, default=0)
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    lock_until = Column(DateTime, nullable=True)
    reset_token = Column(String(128), nullable=True, index=True)
    reset_token_expires_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def is_locked(self, now) -> bool:
        return self.lock_until is not None and self.lock_until > now
