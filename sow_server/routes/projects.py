"""Project endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from ..db import models
from ..dependencies import db_session
from ..services.access import owned_project
from .auth import SessionUser, get_current_user


router = APIRouter(prefix="/projects", tags=["projects"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Budget(_CamelModel):
    min: Optional[float] = Field(default=None, ge=0)
    max: Optional[float] = Field(default=None, ge=0)


class ProjectRequirements(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    description: Optional[str] = None
    budget: Optional[Budget] = None
    timeline: Optional[str] = None


class ProjectCreateRequest(_CamelModel):
    name: str = Field(..., max_length=200)
    project_type: str = Field(..., max_length=120)
    description: Optional[str] = None
    requirements: ProjectRequirements = Field(default_factory=ProjectRequirements)
    property_address: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", "project_type")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class ProjectResponse(_CamelModel):
    id: UUID
    owner_id: UUID
    name: str
    project_type: str
    description: Optional[str] = None
    requirements: Dict[str, Any]
    property_address: Dict[str, Any]
    status: str
    created_at: datetime
    updated_at: datetime


@router.get("", response_model=List[ProjectResponse], response_model_by_alias=True)
def list_projects(
    db: Session = Depends(db_session),
    current_user: SessionUser = Depends(get_current_user),
) -> List[ProjectResponse]:
    projects = (
        db.query(models.Project)
        .filter(models.Project.owner_id == current_user.id)
        .order_by(models.Project.created_at.desc())
        .all()
    )
    return [ProjectResponse.model_validate(project) for project in projects]


@router.post("", response_model=ProjectResponse, response_model_by_alias=True, status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreateRequest,
    db: Session = Depends(db_session),
    current_user: SessionUser = Depends(get_current_user),
) -> ProjectResponse:
    project = models.Project(
        owner_id=current_user.id,
        name=payload.name,
        project_type=payload.project_type,
        description=payload.description,
        requirements=payload.requirements.model_dump(exclude_none=True),
        property_address=payload.property_address,
        status=models.ProjectStatus.DRAFT,
    )
    db.add(project)
    db.flush()
    db.refresh(project)
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}", response_model=ProjectResponse, response_model_by_alias=True)
def get_project(
    project_id: UUID,
    db: Session = Depends(db_session),
    current_user: SessionUser = Depends(get_current_user),
) -> ProjectResponse:
    project = owned_project(db, project_id, current_user.id)
    return ProjectResponse.model_validate(project)
