"""Domain models for the user registry."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

RECENT_WINDOW = timedelta(hours=24)


class UserValidationError(ValueError):
    """Raised when a candidate user breaks one of the registry rules."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class MissingFieldError(UserValidationError):
    """A required field is empty or whitespace only."""

    def __init__(self, field: str) -> None:
        super().__init__(field, f"{field} is required")


class InvalidFormatError(UserValidationError):
    """A field is present but syntactically wrong."""

    def __init__(self, field: str) -> None:
        super().__init__(field, f"invalid {field} format")


@dataclass(frozen=True)
class User:
    """Represents a user account held by the registry."""

    id: str
    name: str
    email: str
    created_at: datetime

    def validate(self) -> None:
        """Raise :class:`UserValidationError` if the user is not acceptable.

        Name presence is checked first, then email presence, then the email
        format, so the reported error is deterministic.
        """

        if not self.name.strip():
            raise MissingFieldError("name")
        if not self.email.strip():
            raise MissingFieldError("email")
        if "@" not in self.email:
            raise InvalidFormatError("email")

    def is_recent(self, now: Optional[datetime] = None) -> bool:
        """Return ``True`` when the user was created within the last 24 hours."""

        current = now or datetime.now(timezone.utc)
        return current - self.created_at < RECENT_WINDOW


__all__ = [
    "InvalidFormatError",
    "MissingFieldError",
    "User",
    "UserValidationError",
]
