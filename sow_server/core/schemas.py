"""Pydantic schemas for structured model output.

Both model contracts (next interview question, full Scope of Work) are
validated here before anything downstream trusts them. ``Question`` is a
discriminated union on ``type`` so each variant carries exactly the fields
it needs; ``multiple_choice`` is the only one with ``options``.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


SOW_SECTION_TITLES = (
    "Executive Summary",
    "Detailed Scope of Works",
    "Materials & Specifications",
    "Programme & Milestones",
    "Costs & Payment Schedule",
    "Quality & Compliance",
    "Health, Safety & Environmental",
    "Contract Conditions",
)


class _QuestionBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(..., min_length=1, max_length=120)
    text: str = Field(..., min_length=1)
    required: bool = False

    @field_validator("id", "text")
    @classmethod
    def _strip(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("must not be blank")
        return cleaned


class TextQuestion(_QuestionBase):
    type: Literal["text"] = "text"


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: List[str] = Field(..., min_length=1)

    @field_validator("options")
    @classmethod
    def _non_blank_options(cls, value: List[str]) -> List[str]:
        cleaned = [option.strip() for option in value]
        if any(not option for option in cleaned):
            raise ValueError("options must be non-empty strings")
        return cleaned


class NumberQuestion(_QuestionBase):
    type: Literal["number"] = "number"


class BooleanQuestion(_QuestionBase):
    type: Literal["boolean"] = "boolean"


class ScaleQuestion(_QuestionBase):
    type: Literal["scale"] = "scale"


Question = Annotated[
    Union[TextQuestion, MultipleChoiceQuestion, NumberQuestion, BooleanQuestion, ScaleQuestion],
    Field(discriminator="type"),
]


class QuestionEnvelope(BaseModel):
    """The object the model must return for the next-question prompt."""

    model_config = ConfigDict(extra="ignore")

    question: Question
    is_complete: bool = Field(False, alias="isComplete")
    reasoning: str = ""


class QuestionResult(BaseModel):
    """Outcome of one next-question request, AI generated or fallback."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question: Question
    is_complete: bool
    reasoning: str
    is_ai_generated: bool = Field(..., alias="isAIGenerated")
    fallback_reason: Optional[str] = None


class DocumentSection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)

    @field_validator("content", mode="before")
    @classmethod
    def _flatten_content(cls, value: Any) -> Any:
        # Models sometimes return bullet lists instead of prose
        if isinstance(value, list):
            return "\n".join(f"- {item}" for item in value if str(item).strip())
        return value


def _normalise_title(title: str) -> str:
    stripped = re.sub(r"^\s*\d+[.)]?\s*", "", title)
    return re.sub(r"[^a-z]", "", stripped.lower().replace("&", "and"))


_EXPECTED_TITLES = [_normalise_title(title) for title in SOW_SECTION_TITLES]


class DocumentPayload(BaseModel):
    """The Scope of Work object the model must return."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    sections: List[DocumentSection]
    project_details: Dict[str, Any] = Field(default_factory=dict, alias="projectDetails")

    @field_validator("project_details", mode="before")
    @classmethod
    def _details_default(cls, value: Any) -> Any:
        return value if value is not None else {}

    @field_validator("sections")
    @classmethod
    def _fixed_section_schema(cls, sections: List[DocumentSection]) -> List[DocumentSection]:
        if len(sections) != len(SOW_SECTION_TITLES):
            raise ValueError(
                f"expected {len(SOW_SECTION_TITLES)} sections, received {len(sections)}"
            )
        canonical: List[DocumentSection] = []
        for index, (section, expected) in enumerate(zip(sections, _EXPECTED_TITLES)):
            if _normalise_title(section.title) != expected:
                raise ValueError(
                    f"section {index + 1} must be '{SOW_SECTION_TITLES[index]}', got '{section.title}'"
                )
            canonical.append(DocumentSection(title=SOW_SECTION_TITLES[index], content=section.content))
        return canonical
