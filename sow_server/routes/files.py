"""Project file upload endpoints."""

from __future__ import annotations

import hashlib
import logging
import mimetypes
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from ..adapters.storage import StorageBackend
from ..db import models
from ..dependencies import db_session, get_storage
from ..services.access import owned_project
from ..storage import ProjectStorageError, input_path, project_storage_key
from .auth import SessionUser, get_current_user


router = APIRouter(prefix="/projects/{project_id}/files", tags=["files"])

LOGGER = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 25 * 1024 * 1024


class ProjectFileResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    project_id: UUID
    filename: str
    path: str
    size: int
    media_type: Optional[str] = None
    checksum: str
    created_at: datetime


def _existing_file(db: Session, project_id: UUID, path: str) -> Optional[models.ProjectFile]:
    return (
        db.query(models.ProjectFile)
        .filter(models.ProjectFile.project_id == project_id, models.ProjectFile.path == path)
        .one_or_none()
    )


@router.get("", response_model=List[ProjectFileResponse], response_model_by_alias=True)
def list_files(
    project_id: UUID,
    db: Session = Depends(db_session),
    current_user: SessionUser = Depends(get_current_user),
) -> List[ProjectFileResponse]:
    owned_project(db, project_id, current_user.id)
    records = (
        db.query(models.ProjectFile)
        .filter(models.ProjectFile.project_id == project_id)
        .order_by(models.ProjectFile.created_at.asc())
        .all()
    )
    return [ProjectFileResponse.model_validate(record) for record in records]


@router.post(
    "",
    response_model=ProjectFileResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def upload_file(
    project_id: UUID,
    file: UploadFile = File(...),
    db: Session = Depends(db_session),
    storage: StorageBackend = Depends(get_storage),
    current_user: SessionUser = Depends(get_current_user),
) -> ProjectFileResponse:
    project = await run_in_threadpool(owned_project, db, project_id, current_user.id)

    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Uploaded file '{file.filename}' is empty")
    if len(contents) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Uploaded file '{file.filename}' exceeds {MAX_UPLOAD_BYTES} bytes",
        )

    try:
        relative_path = input_path(file.filename or "")
        storage_key = project_storage_key(str(project.id), relative_path)
    except ProjectStorageError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    media_type = file.content_type or mimetypes.guess_type(relative_path)[0]
    try:
        await run_in_threadpool(storage.put_bytes, storage_key, contents, media_type)
    except Exception as exc:  # pragma: no cover - backend failure
        LOGGER.exception("Failed to store %s", storage_key)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save file '{file.filename}': {exc}",
        )

    checksum = hashlib.sha256(contents).hexdigest()
    # One row per stored path
    record = await run_in_threadpool(_existing_file, db, project.id, relative_path)
    if record is None:
        record = models.ProjectFile(
            project_id=project.id,
            filename=relative_path.split("/", 1)[1],
            path=relative_path,
            size=len(contents),
            media_type=media_type,
            checksum=checksum,
        )
        db.add(record)
        try:
            await run_in_threadpool(db.flush)
        except Exception:
            # Leave no orphaned object behind when the record cannot be written
            await run_in_threadpool(storage.delete, storage_key)
            raise
        LOGGER.info("Stored %s (%s bytes) for project %s", record.filename, record.size, project.id)
    else:
        record.size = len(contents)
        record.media_type = media_type
        record.checksum = checksum
        await run_in_threadpool(db.flush)
        LOGGER.info("Replaced %s (%s bytes) for project %s", record.filename, record.size, project.id)
    return ProjectFileResponse.model_validate(record)
