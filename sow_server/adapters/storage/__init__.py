"""Storage backend abstractions."""

from .base import StorageBackend, StorageError, StorageObject
from .local import LocalStorageBackend
from .supabase import SupabaseStorageBackend

__all__ = [
    "StorageBackend",
    "StorageError",
    "StorageObject",
    "LocalStorageBackend",
    "SupabaseStorageBackend",
]
