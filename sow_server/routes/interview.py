"""Questionnaire endpoints driving the adaptive interview."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.schemas import QuestionResult
from ..dependencies import Services, get_services
from .auth import SessionUser, get_current_user


router = APIRouter(prefix="/projects/{project_id}/questionnaire", tags=["questionnaire"])


class InterviewSessionResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    project_id: UUID
    user_id: UUID
    current_question_index: int
    responses: List[Dict[str, Any]]
    is_complete: bool
    completion_percentage: int
    created_at: datetime
    updated_at: datetime


class ResponseSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(..., validation_alias=AliasChoices("questionId", "question_id"), min_length=1)
    value: Any = Field(..., validation_alias=AliasChoices("value", "answer"))
    question_text: Optional[str] = Field(default=None, validation_alias=AliasChoices("questionText", "question_text"))
    question_index: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("questionIndex", "currentQuestionIndex", "question_index"),
    )


@router.post(
    "/start",
    response_model=InterviewSessionResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
def start_questionnaire(
    project_id: UUID,
    services: Services = Depends(get_services),
    current_user: SessionUser = Depends(get_current_user),
) -> InterviewSessionResponse:
    record = services.interview.start_session(project_id, current_user.id)
    return InterviewSessionResponse.model_validate(record)


@router.get("", response_model=InterviewSessionResponse, response_model_by_alias=True)
def get_questionnaire(
    project_id: UUID,
    services: Services = Depends(get_services),
    current_user: SessionUser = Depends(get_current_user),
) -> InterviewSessionResponse:
    record = services.interview.get_current_session(project_id, current_user.id)
    return InterviewSessionResponse.model_validate(record)


@router.post("/{session_id}/next", response_model=QuestionResult, response_model_by_alias=True)
async def next_question(
    project_id: UUID,
    session_id: UUID,
    services: Services = Depends(get_services),
    current_user: SessionUser = Depends(get_current_user),
) -> QuestionResult:
    # Blocks on the object store and the model
    return await run_in_threadpool(services.interview.next_question, project_id, session_id, current_user.id)


@router.post("/{session_id}/response", response_model=InterviewSessionResponse, response_model_by_alias=True)
def submit_response(
    project_id: UUID,
    session_id: UUID,
    payload: ResponseSubmission,
    services: Services = Depends(get_services),
    current_user: SessionUser = Depends(get_current_user),
) -> InterviewSessionResponse:
    record = services.interview.record_response(
        project_id,
        session_id,
        current_user.id,
        question_id=payload.question_id,
        value=payload.value,
        question_text=payload.question_text,
        question_index=payload.question_index,
    )
    return InterviewSessionResponse.model_validate(record)


@router.post("/{session_id}/complete", response_model=InterviewSessionResponse, response_model_by_alias=True)
def complete_questionnaire(
    project_id: UUID,
    session_id: UUID,
    services: Services = Depends(get_services),
    current_user: SessionUser = Depends(get_current_user),
) -> InterviewSessionResponse:
    record = services.interview.complete_session(project_id, session_id, current_user.id)
    return InterviewSessionResponse.model_validate(record)
