"""Helpers for locating project uploads in the object store."""

from .projects import ProjectStorageError, input_path, project_storage_key

__all__ = [
    "ProjectStorageError",
    "input_path",
    "project_storage_key",
]
