"""Scope of Work generation, task polling and document retrieval."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..dependencies import Services, get_services
from .auth import SessionUser, get_current_user


router = APIRouter(prefix="/projects/{project_id}/sow", tags=["sow"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class GenerateResponse(_CamelModel):
    task_id: UUID
    status: str


class GenerationTaskResponse(_CamelModel):
    id: UUID
    project_id: UUID
    session_id: UUID
    status: str
    progress: int
    created_at: datetime
    updated_at: datetime
    estimated_completion: Optional[datetime] = None
    error_message: Optional[str] = None


class SectionResponse(_CamelModel):
    title: str
    content: str


class GeneratedDocumentResponse(_CamelModel):
    id: UUID
    project_id: UUID
    title: str
    sections: List[SectionResponse]
    project_details: Dict[str, Any]
    generated_at: datetime
    version: str


@router.post(
    "/generate",
    response_model=GenerateResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_202_ACCEPTED,
)
def generate_document(
    project_id: UUID,
    services: Services = Depends(get_services),
    current_user: SessionUser = Depends(get_current_user),
) -> GenerateResponse:
    task = services.generation.create_task(project_id, current_user.id)
    return GenerateResponse(task_id=task.id, status=task.status)


@router.get("/tasks/{task_id}", response_model=GenerationTaskResponse, response_model_by_alias=True)
def get_task_status(
    project_id: UUID,
    task_id: UUID,
    services: Services = Depends(get_services),
    current_user: SessionUser = Depends(get_current_user),
) -> GenerationTaskResponse:
    task = services.generation.get_status(project_id, task_id, current_user.id)
    return GenerationTaskResponse.model_validate(task)


@router.get("/{task_id}", response_model=GeneratedDocumentResponse, response_model_by_alias=True)
def get_document(
    project_id: UUID,
    task_id: UUID,
    services: Services = Depends(get_services),
    current_user: SessionUser = Depends(get_current_user),
) -> GeneratedDocumentResponse:
    document = services.generation.get_document(project_id, task_id, current_user.id)
    return GeneratedDocumentResponse.model_validate(document)
