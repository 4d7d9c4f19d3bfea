"""Task creation and status tracking for Scope of Work generation."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import sessionmaker

from ..core.config import GENERATION_ESTIMATE_SECONDS
from ..core.errors import AccessDenied, NotFound, ValidationError
from ..db import models, session_scope
from .access import owned_project
from .interview import latest_session
from .job_runner import GenerationQueue


LOGGER = logging.getLogger(__name__)


class GenerationService:
    def __init__(
        self,
        session_factory: sessionmaker,
        queue: Optional[GenerationQueue] = None,
        *,
        estimate_seconds: int = GENERATION_ESTIMATE_SECONDS,
    ) -> None:
        self._session_factory = session_factory
        self.queue = queue
        self.estimate_seconds = estimate_seconds

    def create_task(self, project_id: UUID, user_id: UUID) -> models.GenerationTask:
        """Create a generating task for the project's completed interview.

        The task row is committed before it is queued so a worker can never
        pick up an id that does not exist yet.
        """
        if self.queue is None:
            raise RuntimeError("GenerationService has no queue attached")

        with session_scope(self._session_factory) as db:
            owned_project(db, project_id, user_id)
            interview = latest_session(db, project_id)
            if interview is None:
                raise ValidationError("Start and complete the questionnaire before generating a Scope of Work")
            if not interview.is_complete:
                raise ValidationError("Questionnaire must be completed before generating a Scope of Work")

            now = datetime.utcnow()
            task = models.GenerationTask(
                project_id=project_id,
                owner_id=user_id,
                session_id=interview.id,
                status=models.TaskStatus.GENERATING,
                progress=0,
                created_at=now,
                updated_at=now,
                estimated_completion=now + timedelta(seconds=self.estimate_seconds),
            )
            db.add(task)
            db.flush()

        self.queue.enqueue(task.id)
        LOGGER.info("Created generation task %s for project %s", task.id, project_id)
        return task

    def get_status(self, project_id: UUID, task_id: UUID, user_id: UUID) -> models.GenerationTask:
        with session_scope(self._session_factory) as db:
            owned_project(db, project_id, user_id)
            task = db.get(models.GenerationTask, task_id)
            if task is None or task.project_id != project_id:
                raise NotFound("Generation task not found")
            if task.owner_id != user_id:
                raise AccessDenied()
            return task

    def get_document(self, project_id: UUID, task_id: UUID, user_id: UUID) -> models.GeneratedDocument:
        with session_scope(self._session_factory) as db:
            owned_project(db, project_id, user_id)
            document = db.get(models.GeneratedDocument, task_id)
            if document is None or document.project_id != project_id:
                raise NotFound("Scope of Work not found")
            if document.owner_id != user_id:
                raise AccessDenied()
            return document
