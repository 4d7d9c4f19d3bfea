"""Background job runner for Scope of Work generation tasks."""

from __future__ import annotations

import logging
import queue
from datetime import datetime
from threading import Lock, Thread
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.orm import sessionmaker

from ..core.config import DOCUMENT_MAX_TOKENS, GENERATION_WORKERS
from ..core.context import ContextAssembler
from ..core.documents import build_document_prompt, parse_document_response
from ..core.errors import InvalidTransitionError, ModelInvocationError, ServiceError
from ..core.llm import ModelClient
from ..db import models, session_scope


LOGGER = logging.getLogger(__name__)

_STOP = object()


class GenerationQueue:
    """Thread-safe task queue drained by a small pool of daemon workers.

    ``enqueue`` never blocks on generation. With ``autostart=False`` no
    threads are started and ``drain`` runs pending work on the caller's
    thread, which is how tests exercise the worker deterministically.
    """

    def __init__(
        self,
        handler: Callable[[UUID], None],
        *,
        workers: int = GENERATION_WORKERS,
        autostart: bool = True,
    ) -> None:
        self._handler = handler
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._workers = max(1, workers)
        self._threads: List[Thread] = []
        self._lock = Lock()
        if autostart:
            self.start()

    @property
    def running(self) -> bool:
        return bool(self._threads)

    def enqueue(self, task_id: UUID) -> None:
        self._queue.put(task_id)
        LOGGER.info("Queued generation task %s", task_id)

    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        with self._lock:
            if self._threads:
                return
            for index in range(self._workers):
                thread = Thread(target=self._worker_loop, name=f"sow-generation-{index}", daemon=True)
                thread.start()
                self._threads.append(thread)
        LOGGER.info("Started %s generation worker(s)", self._workers)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        with self._lock:
            threads, self._threads = self._threads, []
        for _ in threads:
            self._queue.put(_STOP)
        for thread in threads:
            thread.join(timeout)

    def drain(self) -> int:
        """Run every queued task on the calling thread; returns how many ran."""

        processed = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return processed
            try:
                if item is not _STOP:
                    self._run(item)
                    processed += 1
            finally:
                self._queue.task_done()

    def _worker_loop(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._run(item)
            finally:
                self._queue.task_done()

    def _run(self, task_id) -> None:
        try:
            self._handler(task_id)
        except Exception:
            LOGGER.exception("Generation handler crashed for task %s", task_id)


class DocumentWorker:
    """Turns a generating task into a Scope of Work or a failed task."""

    def __init__(
        self,
        session_factory: sessionmaker,
        assembler: ContextAssembler,
        model: Optional[ModelClient],
        *,
        max_tokens: int = DOCUMENT_MAX_TOKENS,
    ) -> None:
        self._session_factory = session_factory
        self._assembler = assembler
        self._model = model
        self.max_tokens = max_tokens

    def generate(self, task_id: UUID) -> None:
        with session_scope(self._session_factory) as db:
            task = db.get(models.GenerationTask, task_id)
            if task is None:
                LOGGER.warning("Generation task %s no longer exists", task_id)
                return
            if task.is_terminal:
                LOGGER.info("Skipping task %s: already %s", task_id, task.status)
                return
            project = db.get(models.Project, task.project_id)
            interview = db.get(models.InterviewSession, task.session_id)
            files = (
                db.query(models.ProjectFile)
                .filter(models.ProjectFile.project_id == task.project_id)
                .order_by(models.ProjectFile.created_at.asc())
                .all()
            )
            responses = list(interview.responses or []) if interview else []
            task.progress = 50
            task.updated_at = datetime.utcnow()

        try:
            if self._model is None:
                raise ModelInvocationError("Generative model is not configured")
            prompt = build_document_prompt(
                self._assembler.project_context(project, files),
                responses,
                self._assembler.assemble(project, files),
            )
            LOGGER.info("Generating Scope of Work for task %s (project %s)", task_id, project.id)
            raw = self._model.invoke(prompt, self.max_tokens)
            payload = parse_document_response(raw)
            self._persist(task_id, payload)
        except ServiceError as exc:
            LOGGER.exception("Generation task %s failed", task_id)
            self._mark_failed(task_id, exc.message)
        except Exception as exc:
            LOGGER.exception("Generation task %s failed", task_id)
            self._mark_failed(task_id, f"Unexpected error: {exc}")

    def _persist(self, task_id: UUID, payload) -> None:
        with session_scope(self._session_factory) as db:
            task = (
                db.query(models.GenerationTask)
                .filter(models.GenerationTask.id == task_id)
                .with_for_update()
                .one()
            )
            task.transition(models.TaskStatus.COMPLETED)
            db.add(
                models.GeneratedDocument(
                    id=task.id,
                    project_id=task.project_id,
                    owner_id=task.owner_id,
                    title=payload.title,
                    sections=[section.model_dump() for section in payload.sections],
                    project_details=payload.project_details,
                    generated_at=datetime.utcnow(),
                    version="1.0",
                )
            )
            project = db.get(models.Project, task.project_id)
            project.status = models.ProjectStatus.SOW_READY
            project.updated_at = datetime.utcnow()
        LOGGER.info("Generation task %s completed", task_id)

    def _mark_failed(self, task_id: UUID, error: str) -> None:
        try:
            with session_scope(self._session_factory) as db:
                task = db.get(models.GenerationTask, task_id)
                if task is None:
                    return
                task.transition(models.TaskStatus.FAILED, error_message=error)
        except InvalidTransitionError as exc:
            LOGGER.warning("Could not mark task %s failed: %s", task_id, exc.message)
