"""Service container and FastAPI dependencies common across routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy.orm import Session, sessionmaker

from .adapters.auth import AuthProvider, LocalAuthProvider, SupabaseAuthProvider
from .adapters.storage import LocalStorageBackend, StorageBackend, SupabaseStorageBackend
from .core.config import (
    ANTHROPIC_API_KEY,
    AUTH_PROVIDER,
    CONTEXT_DOC_BYTE_CAP,
    CONTEXT_TOTAL_BYTE_CAP,
    DATA_ROOT,
    DATABASE_DSN,
    GENERATION_WORKERS,
    INTERVIEW_HARD_CAP,
    STORAGE_PROVIDER,
    SUPABASE_ANON_KEY,
    SUPABASE_BUCKET,
    SUPABASE_SERVICE_ROLE_KEY,
    SUPABASE_URL,
    ensure_storage_dirs,
)
from .core.context import ContextAssembler
from .core.llm import ClaudeClient, ModelClient
from .core.questions import QuestionGenerator
from .db import Base, create_db_engine, create_session_factory, session_scope
from .services import DocumentWorker, GenerationQueue, GenerationService, InterviewService


LOGGER = logging.getLogger(__name__)


@dataclass
class Services:
    session_factory: sessionmaker
    storage: StorageBackend
    auth_provider: AuthProvider
    model: Optional[ModelClient]
    assembler: ContextAssembler
    interview: InterviewService
    generation: GenerationService
    worker: DocumentWorker
    queue: GenerationQueue

    def shutdown(self) -> None:
        self.queue.stop()


def _default_session_factory() -> sessionmaker:
    engine = create_db_engine(DATABASE_DSN)
    if engine.dialect.name == "sqlite":
        # Postgres schemas are managed by Alembic
        Base.metadata.create_all(engine)
    return create_session_factory(engine)


def _default_storage() -> StorageBackend:
    if STORAGE_PROVIDER == "supabase":
        missing = []
        if not SUPABASE_URL:
            missing.append("SUPABASE_URL")
        if not SUPABASE_SERVICE_ROLE_KEY:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        if missing:
            joined = ", ".join(missing)
            raise RuntimeError(f"Supabase storage enabled but missing required env vars: {joined}")
        return SupabaseStorageBackend(
            url=SUPABASE_URL or "",
            bucket=SUPABASE_BUCKET,
            service_role_key=SUPABASE_SERVICE_ROLE_KEY or "",
        )
    # Keys already carry the projects/<id>/ prefix
    ensure_storage_dirs()
    return LocalStorageBackend(DATA_ROOT)


def _default_auth_provider() -> AuthProvider:
    if AUTH_PROVIDER == "supabase":
        return SupabaseAuthProvider(url=SUPABASE_URL, anon_key=SUPABASE_ANON_KEY)
    return LocalAuthProvider()


def _default_model() -> Optional[ModelClient]:
    if not ANTHROPIC_API_KEY:
        LOGGER.warning("ANTHROPIC_API_KEY is not set; interview will use fallback questions only")
        return None
    return ClaudeClient(ANTHROPIC_API_KEY)


def build_services(
    *,
    session_factory: Optional[sessionmaker] = None,
    storage: Optional[StorageBackend] = None,
    auth_provider: Optional[AuthProvider] = None,
    model: Optional[ModelClient] = None,
    use_default_model: bool = True,
    hard_cap: int = INTERVIEW_HARD_CAP,
    per_document_cap: int = CONTEXT_DOC_BYTE_CAP,
    total_cap: int = CONTEXT_TOTAL_BYTE_CAP,
    workers: int = GENERATION_WORKERS,
    autostart: bool = True,
) -> Services:
    """Wire every component once; anything not supplied comes from config."""

    if session_factory is None:
        session_factory = _default_session_factory()
    storage = storage or _default_storage()
    auth_provider = auth_provider or _default_auth_provider()
    if model is None and use_default_model:
        model = _default_model()

    assembler = ContextAssembler(storage, per_document_cap=per_document_cap, total_cap=total_cap)
    worker = DocumentWorker(session_factory, assembler, model)
    queue = GenerationQueue(worker.generate, workers=workers, autostart=autostart)
    return Services(
        session_factory=session_factory,
        storage=storage,
        auth_provider=auth_provider,
        model=model,
        assembler=assembler,
        interview=InterviewService(session_factory, assembler, QuestionGenerator(model, hard_cap=hard_cap)),
        generation=GenerationService(session_factory, queue),
        worker=worker,
        queue=queue,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def db_session(request: Request) -> Iterator[Session]:
    with session_scope(get_services(request).session_factory) as session:
        yield session


def get_storage(request: Request) -> StorageBackend:
    return get_services(request).storage


def get_auth_provider(request: Request) -> AuthProvider:
    return get_services(request).auth_provider
