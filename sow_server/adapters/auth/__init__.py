"""Authentication provider abstractions."""

from .base import AuthError, AuthUnsupportedError, AuthProvider, AuthenticatedUser
from .local import LocalAuthProvider
from .supabase import SupabaseAuthProvider

__all__ = [
    "AuthError",
    "AuthUnsupportedError",
    "AuthProvider",
    "AuthenticatedUser",
    "LocalAuthProvider",
    "SupabaseAuthProvider",
]
