"""Interview session store and response recorder."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from ..core.context import ContextAssembler
from ..core.errors import NotFound, ValidationError
from ..core.questions import QuestionGenerator
from ..core.schemas import QuestionResult
from ..db import models, session_scope
from .access import owned_project


LOGGER = logging.getLogger(__name__)


def completion_percentage(index: int) -> int:
    return min(100, 10 * index)


class InterviewService:
    """Owns interview session state.

    Sessions are only mutated here: ``record_response`` advances the index by
    exactly one per accepted answer and marks the session complete when the
    hard cap is reached; ``complete_session`` is the explicit early finish.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        assembler: ContextAssembler,
        generator: QuestionGenerator,
    ) -> None:
        self._session_factory = session_factory
        self._assembler = assembler
        self._generator = generator

    @property
    def hard_cap(self) -> int:
        return self._generator.hard_cap

    def start_session(self, project_id: UUID, user_id: UUID) -> models.InterviewSession:
        with session_scope(self._session_factory) as db:
            owned_project(db, project_id, user_id)
            now = datetime.utcnow()
            record = models.InterviewSession(
                project_id=project_id,
                user_id=user_id,
                current_question_index=0,
                responses=[],
                is_complete=False,
                completion_percentage=0,
                created_at=now,
                updated_at=now,
            )
            db.add(record)
            db.flush()
            LOGGER.info("Started interview session %s for project %s", record.id, project_id)
            return record

    def get_current_session(self, project_id: UUID, user_id: UUID) -> models.InterviewSession:
        with session_scope(self._session_factory) as db:
            owned_project(db, project_id, user_id)
            record = latest_session(db, project_id)
            if record is None:
                raise NotFound("No questionnaire session found")
            return record

    def next_question(self, project_id: UUID, session_id: UUID, user_id: UUID) -> QuestionResult:
        with session_scope(self._session_factory) as db:
            project = owned_project(db, project_id, user_id)
            record = _get_session(db, project_id, session_id)
            if record.is_complete:
                raise ValidationError("Interview session is already complete")
            files = _project_files(db, project_id)
            responses: List[Dict[str, Any]] = list(record.responses or [])
            index = record.current_question_index

        # Model and object-store I/O happen outside the database transaction
        project_context = self._assembler.project_context(project, files)
        documents_context = self._assembler.assemble(project, files)
        return self._generator.generate_next_question(
            project_context,
            responses,
            index,
            documents_context,
        )

    def record_response(
        self,
        project_id: UUID,
        session_id: UUID,
        user_id: UUID,
        *,
        question_id: str,
        value: Any,
        question_text: Optional[str] = None,
        question_index: Optional[int] = None,
    ) -> models.InterviewSession:
        question_id = (question_id or "").strip()
        if not question_id:
            raise ValidationError("questionId is required")

        with session_scope(self._session_factory) as db:
            owned_project(db, project_id, user_id)
            record = _get_session(db, project_id, session_id, for_update=True)
            if record.is_complete:
                raise ValidationError("Interview session is already complete")
            if question_index is not None and question_index != record.current_question_index:
                raise ValidationError(
                    f"Question {question_index} has already been answered; "
                    f"the session is at question {record.current_question_index}"
                )
            responses = list(record.responses or [])
            if responses and responses[-1].get("questionId") == question_id:
                raise ValidationError(f"Question '{question_id}' has already been answered")

            now = datetime.utcnow()
            entry: Dict[str, Any] = {
                "questionId": question_id,
                "value": value,
                "timestamp": now.isoformat(),
            }
            if question_text:
                entry["questionText"] = question_text

            index = record.current_question_index + 1
            # Reassign rather than mutate so the JSON column is flagged dirty
            record.responses = [*responses, entry]
            record.current_question_index = index
            record.completion_percentage = completion_percentage(index)
            if index >= self.hard_cap:
                record.is_complete = True
                LOGGER.info("Session %s reached the %s question cap", session_id, self.hard_cap)
            record.updated_at = now
            return record

    def complete_session(self, project_id: UUID, session_id: UUID, user_id: UUID) -> models.InterviewSession:
        with session_scope(self._session_factory) as db:
            project = owned_project(db, project_id, user_id)
            record = _get_session(db, project_id, session_id, for_update=True)
            if record.is_complete and project.status != models.ProjectStatus.DRAFT:
                return record
            now = datetime.utcnow()
            if not record.is_complete:
                record.is_complete = True
                record.completion_percentage = 100
                record.updated_at = now
            project.status = models.ProjectStatus.SOW_GENERATION
            project.updated_at = now
            LOGGER.info("Session %s completed; project %s moved to %s", session_id, project_id, project.status)
            return record


def latest_session(db: Session, project_id: UUID) -> Optional[models.InterviewSession]:
    return (
        db.query(models.InterviewSession)
        .filter(models.InterviewSession.project_id == project_id)
        .order_by(models.InterviewSession.created_at.desc())
        .first()
    )


def _get_session(
    db: Session,
    project_id: UUID,
    session_id: UUID,
    *,
    for_update: bool = False,
) -> models.InterviewSession:
    query = db.query(models.InterviewSession).filter(
        models.InterviewSession.id == session_id,
        models.InterviewSession.project_id == project_id,
    )
    if for_update:
        query = query.with_for_update()
    record = query.one_or_none()
    if record is None:
        raise NotFound("Session not found")
    return record


def _project_files(db: Session, project_id: UUID) -> List[models.ProjectFile]:
    return (
        db.query(models.ProjectFile)
        .filter(models.ProjectFile.project_id == project_id)
        .order_by(models.ProjectFile.created_at.asc())
        .all()
    )
