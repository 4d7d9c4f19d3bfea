"""Base storage backend definitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class StorageObject:
    """Represents a stored object's metadata."""

    key: str
    size: Optional[int] = None
    content_type: Optional[str] = None


class StorageError(RuntimeError):
    """Raised when storage operations fail."""


class StorageBackend:
    """Abstract interface for the object store holding uploaded project documents."""

    def put_bytes(self, key: str, data: bytes, content_type: Optional[str] = None) -> StorageObject:
        raise NotImplementedError

    def get_bytes(self, key: str, max_bytes: Optional[int] = None) -> bytes:
        """Return the object's content, or only its first ``max_bytes`` bytes.

        Raises ``FileNotFoundError`` when the key does not exist and
        ``StorageError`` for any other backend failure.
        """
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError
