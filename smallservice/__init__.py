"""In-memory user registry service and arithmetic helpers."""

from __future__ import annotations

from typing import Any

from .models import User, UserValidationError
from .storage import Storage, UserNotFoundError


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the registry HTTP application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Storage",
    "User",
    "UserNotFoundError",
    "UserValidationError",
    "create_app",
]
