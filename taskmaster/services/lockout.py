"""Failed-login lockout policy."""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from taskmaster.clock import Clock, utcnow
from taskmaster.models.user import User
from taskmaster.services.user_store import UserStore

logger = logging.getLogger("taskmaster")


@dataclass(frozen=True)
class LockStatus:
    """Whether an account is currently refusing logins."""

    locked: bool
    until: datetime | None = None
    remaining_seconds: int = 0

    @property
    def remaining_minutes(self) -> int:
        return max(1, math.ceil(self.remaining_seconds / 60)) if self.locked else 0


UNLOCKED = LockStatus(locked=False)


class LockoutPolicy:
    """Locks an account for a fixed window after repeated failed logins.

    States are Unlocked and Locked(until). While locked, attempts are rejected
    before the password is checked and do not touch the counter, so retrying
    cannot extend the lock. Once the window passes the account is implicitly
    unlocked; the first failure after that starts a fresh count at 1.
    """

    def __init__(self, threshold: int = 5, lock_minutes: int = 30, clock: Clock = utcnow) -> None:
        self.threshold = threshold
        self.lock_duration = timedelta(minutes=lock_minutes)
        self.clock = clock

    def check(self, user: User) -> LockStatus:
        now = self.clock()
        if not user.is_locked(now):
            return UNLOCKED
        remaining = math.ceil((user.lock_until - now).total_seconds())
        return LockStatus(locked=True, until=user.lock_until, remaining_seconds=remaining)

    def register_failure(self, store: UserStore, user: User) -> LockStatus:
        """Record a failed password check and return the resulting lock state."""
        now = self.clock()
        store.record_failed_login(user.id, now, self.threshold, now + self.lock_duration)
        status = self.check(user)
        if status.locked:
            logger.warning("Account %s locked until %s after %d failed logins", user.id, status.until, self.threshold)
        return status

    def register_success(self, store: UserStore, user: User) -> None:
        store.record_successful_login(user.id, self.clock())
