"""Ownership checks shared by every project-scoped operation."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from ..core.errors import AccessDenied
from ..db import models


def owned_project(db: Session, project_id: UUID, user_id: UUID) -> models.Project:
    """Return the project if ``user_id`` owns it.

    A missing project is reported as ``AccessDenied`` too, so callers cannot
    probe which project ids exist.
    """
    project = db.get(models.Project, project_id)
    if project is None or project.owner_id != user_id:
        raise AccessDenied()
    return project
