"""Security utilities for authentication."""

from .passwords import PasswordService
from .sessions import TokenService

__all__ = ["PasswordService", "TokenService"]
