"""SQLAlchemy ORM models for the interview and Scope of Work platform."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID as UUID_t, uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.errors import InvalidTransitionError
from .session import Base


# JSONB on Postgres, plain JSON elsewhere (SQLite for local runs and tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.utcnow()


class ProjectStatus:
    DRAFT = "draft"
    SOW_GENERATION = "sow_generation"
    SOW_READY = "sow_ready"


class TaskStatus:
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    TERMINAL = frozenset({COMPLETED, FAILED})


class User(Base):
    __tablename__ = "users"

    id: Mapped[UUID_t] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False, default="homeowner")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, nullable=False)

    projects: Mapped[List["Project"]] = relationship("Project", back_populates="owner")


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[UUID_t] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID_t] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    project_type: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    requirements: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    property_address: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False, default=ProjectStatus.DRAFT)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False)

    owner: Mapped[User] = relationship("User", back_populates="projects")
    files: Mapped[List["ProjectFile"]] = relationship("ProjectFile", back_populates="project", cascade="all, delete-orphan")
    sessions: Mapped[List["InterviewSession"]] = relationship("InterviewSession", back_populates="project")
    tasks: Mapped[List["GenerationTask"]] = relationship("GenerationTask", back_populates="project")


class ProjectFile(Base):
    __tablename__ = "project_files"

    id: Mapped[UUID_t] = mapped_column(Uuid, primary_key=True, default=uuid4)
    project_id: Mapped[UUID_t] = mapped_column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    media_type: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    checksum: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, nullable=False)

    project: Mapped[Project] = relationship("Project", back_populates="files")


class InterviewSession(Base):
    """One interview instance. Never deleted: the responses are an audit trail."""

    __tablename__ = "interview_sessions"

    id: Mapped[UUID_t] = mapped_column(Uuid, primary_key=True, default=uuid4)
    project_id: Mapped[UUID_t] = mapped_column(Uuid, ForeignKey("projects.id"), nullable=False, index=True)
    user_id: Mapped[UUID_t] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    current_question_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    responses: Mapped[List[dict]] = mapped_column(JSONType, default=list, nullable=False)
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completion_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False)

    project: Mapped[Project] = relationship("Project", back_populates="sessions")


class GenerationTask(Base):
    __tablename__ = "generation_tasks"

    id: Mapped[UUID_t] = mapped_column(Uuid, primary_key=True, default=uuid4)
    project_id: Mapped[UUID_t] = mapped_column(Uuid, ForeignKey("projects.id"), nullable=False, index=True)
    owner_id: Mapped[UUID_t] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    session_id: Mapped[UUID_t] = mapped_column(Uuid, ForeignKey("interview_sessions.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TaskStatus.GENERATING)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False)
    estimated_completion: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    project: Mapped[Project] = relationship("Project", back_populates="tasks")
    session: Mapped[InterviewSession] = relationship("InterviewSession")
    document: Mapped[Optional["GeneratedDocument"]] = relationship("GeneratedDocument", back_populates="task", uselist=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TaskStatus.TERMINAL

    def transition(self, status: str, *, error_message: Optional[str] = None) -> None:
        """Move a generating task into a terminal state."""

        if status not in TaskStatus.TERMINAL:
            raise InvalidTransitionError(f"Unknown terminal status '{status}'")
        if self.is_terminal:
            raise InvalidTransitionError(f"Task {self.id} is already {self.status}")
        self.status = status
        self.updated_at = utcnow()
        if status == TaskStatus.COMPLETED:
            self.progress = 100
            self.error_message = None
        else:
            self.error_message = error_message or "Document generation failed"


class GeneratedDocument(Base):
    """A Scope of Work. Shares its primary key with the task that produced it."""

    __tablename__ = "generated_documents"

    id: Mapped[UUID_t] = mapped_column(Uuid, ForeignKey("generation_tasks.id"), primary_key=True)
    project_id: Mapped[UUID_t] = mapped_column(Uuid, ForeignKey("projects.id"), nullable=False, index=True)
    owner_id: Mapped[UUID_t] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    sections: Mapped[List[dict]] = mapped_column(JSONType, nullable=False)
    project_details: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow, nullable=False)
    version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")

    task: Mapped[GenerationTask] = relationship("GenerationTask", back_populates="document")
