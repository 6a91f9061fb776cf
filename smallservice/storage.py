"""Thread-safe in-memory registry of users."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional

from .models import User

logger = logging.getLogger("smallservice.storage")

ID_PREFIX = "user_"


class UserNotFoundError(LookupError):
    """Raised when no user exists for the requested identifier."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"user not found: {user_id}")
        self.user_id = user_id


class RegistryFullError(RuntimeError):
    """Raised when the registry already holds the configured maximum of users."""

    def __init__(self, limit: int) -> None:
        super().__init__("user limit reached")
        self.limit = limit


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _ReadWriteLock:
    """Many concurrent readers or a single writer.

    Waiting writers block new readers so a steady stream of reads cannot
    starve ``create``.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class Storage:
    """Owns every :class:`User` and hands out unique identifiers."""

    def __init__(
        self,
        *,
        max_users: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_users is not None and max_users < 1:
            raise ValueError("max_users must be positive or None")
        self._max_users = max_users
        self._clock = clock
        self._lock = _ReadWriteLock()
        self._users: Dict[str, User] = {}
        self._next_id = 1

    @property
    def max_users(self) -> Optional[int]:
        return self._max_users

    def create(self, name: str, email: str) -> User:
        """Validate and store a new user, returning the stored record."""

        with self._lock.write_locked():
            user = User(
                id=f"{ID_PREFIX}{self._next_id}",
                name=name,
                email=email,
                created_at=self._clock(),
            )
            user.validate()
            if self._max_users is not None and len(self._users) >= self._max_users:
                raise RegistryFullError(self._max_users)

            self._users[user.id] = user
            # Only successful inserts consume an id.
            self._next_id += 1

        logger.debug("Stored user %s", user.id)
        return user

    def list(self) -> List[User]:
        """Return every user, most recently created first."""

        with self._lock.read_locked():
            # Newest insertions first so the stable sort breaks timestamp ties the same way.
            users = list(reversed(self._users.values()))
        return sorted(users, key=lambda user: user.created_at, reverse=True)

    def get_by_id(self, user_id: str) -> User:
        with self._lock.read_locked():
            user = self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def count(self) -> int:
        with self._lock.read_locked():
            return len(self._users)


__all__ = ["ID_PREFIX", "RegistryFullError", "Storage", "UserNotFoundError"]
