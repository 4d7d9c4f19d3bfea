"""Object-store key layout for project uploads.

Layout (per project)::

    projects/
        <project_id>/
            input/
                <filename>

Keeping the key rules in one place lets the upload route and the context
assembler agree on where a ``ProjectFile`` lives.
"""

from __future__ import annotations

from pathlib import PurePosixPath


class ProjectStorageError(ValueError):
    """Raised when a key component would escape the project prefix."""


def _assert_safe_component(value: str, label: str) -> str:
    normalised = value.strip()
    if not normalised:
        raise ProjectStorageError(f"{label} cannot be empty")
    if any(sep in normalised for sep in ("/", "\\")):
        raise ProjectStorageError(f"{label} must not contain path separators")
    if normalised in {".", ".."}:
        raise ProjectStorageError(f"{label} cannot be '.' or '..'")
    return normalised


def input_path(filename: str) -> str:
    """Return the project-relative path for an uploaded file."""

    name = PurePosixPath(filename.replace("\\", "/")).name
    return f"input/{_assert_safe_component(name, 'filename')}"


def project_storage_key(project_id: str, relative_path: str) -> str:
    """Return the object-store key for a path inside a project."""

    safe_id = _assert_safe_component(str(project_id), "project_id")
    clean = relative_path.replace("\\", "/").lstrip("/")
    if any(part in {"", ".", ".."} for part in clean.split("/")):
        raise ProjectStorageError(f"Invalid project path '{relative_path}'")
    return f"projects/{safe_id}/{clean}"
