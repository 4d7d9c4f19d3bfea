"""Next-question generation for the requirements interview."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Set

from pydantic import ValidationError as SchemaValidationError

from .config import INTERVIEW_HARD_CAP, QUESTION_MAX_TOKENS
from .errors import ModelInvocationError, ResponseParseError
from .llm import ModelClient, parse_json_object
from .question_bank import FALLBACK_QUESTIONS, FALLBACK_REASONING, fallback_question
from .schemas import QuestionEnvelope, QuestionResult

logger = logging.getLogger(__name__)


def _format_budget(budget: Any) -> str:
    if isinstance(budget, dict) and (budget.get("min") is not None or budget.get("max") is not None):
        low = budget.get("min", "?")
        high = budget.get("max", "?")
        return f"£{low}-£{high}"
    return "Not specified"


def build_question_prompt(
    project_context: Dict[str, Any],
    prior_responses: Sequence[Dict[str, Any]],
    current_index: int,
    hard_cap: int,
    documents_context: str = "",
) -> str:
    documents_block = documents_context.strip() or "No supporting documents were provided."
    return f"""You are an AI assistant helping homeowners provide detailed information about their home improvement project.

Project Context:
- Project Type: {project_context.get('projectType') or 'Not specified'}
- Description: {project_context.get('description') or 'Not specified'}
- Budget: {_format_budget(project_context.get('budget'))}
- Timeline: {project_context.get('timeline') or 'Not specified'}
- Property Address: {json.dumps(project_context.get('propertyAddress') or {})}

Supporting Documents:
{documents_block}

Previous Responses: {json.dumps(list(prior_responses), default=str)}

Current Question Index: {current_index} (the interview ends after {hard_cap} questions)

Generate the next relevant question to gather more specific details about this project. The question should be:
1. Specific to the project type
2. Build upon previous responses and never repeat an answered question
3. Help create a comprehensive scope of work
4. Be clear and easy to understand

Respond with exactly one JSON object and nothing else:
{{
  "question": {{
    "id": "unique_question_id",
    "text": "The question text",
    "type": "text|multiple_choice|number|boolean|scale",
    "options": ["option1", "option2"],
    "required": true
  }},
  "isComplete": false,
  "reasoning": "Why this question is important"
}}

Include "options" (a non-empty list) only when "type" is "multiple_choice".
Set "isComplete" to true if you believe enough information has been gathered."""


def parse_question_response(text: str) -> QuestionEnvelope:
    """Strictly parse the model's next-question reply."""

    data = parse_json_object(text)
    try:
        return QuestionEnvelope.model_validate(data)
    except SchemaValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ResponseParseError(f"Question does not match schema: {problems}") from exc


class QuestionGenerator:
    """Asks the model for the next interview question, falling back to the bank.

    ``is_complete`` on the result is decided only by the hard cap; the
    model's own completion signal is logged and otherwise ignored.
    """

    def __init__(
        self,
        model: Optional[ModelClient],
        *,
        hard_cap: int = INTERVIEW_HARD_CAP,
        max_tokens: int = QUESTION_MAX_TOKENS,
    ) -> None:
        if not 0 < hard_cap <= len(FALLBACK_QUESTIONS):
            raise ValueError(f"hard_cap must be between 1 and {len(FALLBACK_QUESTIONS)}")
        self._model = model
        self.hard_cap = hard_cap
        self.max_tokens = max_tokens

    def is_final_question(self, current_index: int) -> bool:
        return current_index + 1 >= self.hard_cap

    def generate_next_question(
        self,
        project_context: Dict[str, Any],
        prior_responses: Sequence[Dict[str, Any]],
        current_index: int,
        documents_context: str = "",
    ) -> QuestionResult:
        is_complete = self.is_final_question(current_index)
        answered = {str(response.get("questionId")) for response in prior_responses}

        if self._model is None:
            return self._fallback(current_index, answered, is_complete, "Generative model is not configured")

        prompt = build_question_prompt(
            project_context,
            prior_responses,
            current_index,
            self.hard_cap,
            documents_context,
        )
        try:
            raw = self._model.invoke(prompt, self.max_tokens)
            envelope = parse_question_response(raw)
        except ModelInvocationError as exc:
            return self._fallback(current_index, answered, is_complete, f"Model invocation failed: {exc.message}")
        except ResponseParseError as exc:
            return self._fallback(current_index, answered, is_complete, f"Model response rejected: {exc.message}")

        if envelope.is_complete != is_complete:
            logger.info(
                "Model completion signal %s ignored at index %s (hard cap %s)",
                envelope.is_complete,
                current_index,
                self.hard_cap,
            )
        if envelope.question.id in answered:
            return self._fallback(
                current_index,
                answered,
                is_complete,
                f"Model repeated answered question '{envelope.question.id}'",
            )

        return QuestionResult(
            question=envelope.question,
            is_complete=is_complete,
            reasoning=envelope.reasoning,
            is_ai_generated=True,
        )

    def _fallback(
        self,
        current_index: int,
        answered: Set[str],
        is_complete: bool,
        reason: str,
    ) -> QuestionResult:
        logger.warning("Using fallback question at index %s: %s", current_index, reason)
        return QuestionResult(
            question=fallback_question(current_index, answered),
            is_complete=is_complete,
            reasoning=FALLBACK_REASONING,
            is_ai_generated=False,
            fallback_reason=reason,
        )
