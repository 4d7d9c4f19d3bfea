"""Prompt construction and strict parsing for Scope of Work generation."""

from __future__ import annotations

import json
from typing import Any, Dict, Sequence

from pydantic import ValidationError as SchemaValidationError

from .errors import ResponseParseError
from .llm import parse_json_object
from .schemas import SOW_SECTION_TITLES, DocumentPayload


SECTION_GUIDANCE = {
    "Executive Summary": "Project overview, objectives and the headline outcome for the homeowner.",
    "Detailed Scope of Works": "Every work package, what is included, and explicit exclusions.",
    "Materials & Specifications": "Materials, finishes, quantities and applicable product standards.",
    "Programme & Milestones": "Phases in order, durations, dependencies and sign-off milestones.",
    "Costs & Payment Schedule": "Cost breakdown (materials, labour, contingency) and staged payments.",
    "Quality & Compliance": "Building regulations, planning, inspections and workmanship standards.",
    "Health, Safety & Environmental": "Site safety, CDM duties, waste handling and disruption controls.",
    "Contract Conditions": "Variations, warranties, insurance, retention and dispute resolution.",
}


def _format_responses(responses: Sequence[Dict[str, Any]]) -> str:
    if not responses:
        return "No interview responses were recorded."
    lines = []
    for number, response in enumerate(responses, start=1):
        label = response.get("questionText") or response.get("questionId")
        lines.append(f"{number}. {label}: {json.dumps(response.get('value'), default=str)}")
    return "\n".join(lines)


def build_document_prompt(
    project_context: Dict[str, Any],
    responses: Sequence[Dict[str, Any]],
    documents_context: str = "",
) -> str:
    section_lines = "\n".join(
        f"{index}. {title} - {SECTION_GUIDANCE[title]}"
        for index, title in enumerate(SOW_SECTION_TITLES, start=1)
    )
    section_skeleton = ",\n    ".join(
        f'{{"title": "{title}", "content": "..."}}' for title in SOW_SECTION_TITLES
    )
    documents_block = documents_context.strip() or "No supporting documents were provided."
    return f"""You are a senior UK construction estimator writing a professional Scope of Work for a home improvement project.

PROJECT:
{json.dumps(project_context, indent=2, default=str)}

INTERVIEW RESPONSES:
{_format_responses(responses)}

SUPPORTING DOCUMENTS:
{documents_block}

Write the Scope of Work with exactly these {len(SOW_SECTION_TITLES)} sections, in this order:
{section_lines}

Respond with exactly one JSON object and nothing else, in this shape:
{{
  "title": "Scope of Work - <short project title>",
  "sections": [
    {section_skeleton}
  ],
  "projectDetails": {{
    "projectType": "...",
    "location": "...",
    "estimatedValue": 0,
    "estimatedDurationWeeks": 0
  }}
}}

Every section must have non-empty content. Use the section titles exactly as given."""


def parse_document_response(text: str) -> DocumentPayload:
    """Parse and validate the model's Scope of Work reply."""

    data = parse_json_object(text)
    try:
        return DocumentPayload.model_validate(data)
    except SchemaValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'document'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ResponseParseError(f"Scope of Work does not match schema: {problems}") from exc
