"""Deterministic interview questions used whenever the model cannot supply one."""

from __future__ import annotations

from typing import Iterable, Tuple

from .schemas import (
    BooleanQuestion,
    MultipleChoiceQuestion,
    NumberQuestion,
    Question,
    ScaleQuestion,
    TextQuestion,
)


FALLBACK_QUESTIONS: Tuple[Question, ...] = (
    MultipleChoiceQuestion(
        id="project_priority",
        text="What is your main priority for this project?",
        options=["Quality", "Speed", "Budget", "Minimal disruption"],
        required=True,
    ),
    TextQuestion(
        id="specific_requirements",
        text="Are there any specific requirements or constraints we should know about?",
        required=False,
    ),
    TextQuestion(
        id="material_preferences",
        text="Do you have any material preferences?",
        required=False,
    ),
    ScaleQuestion(
        id="completion_urgency",
        text="How urgent is the completion of this project?",
        required=True,
    ),
    BooleanQuestion(
        id="occupied_during_works",
        text="Will the property be occupied while the work is carried out?",
        required=True,
    ),
    MultipleChoiceQuestion(
        id="site_access",
        text="How would you describe access to the work area?",
        options=["Easy street access", "Restricted access", "Shared access", "Not sure"],
        required=True,
    ),
    NumberQuestion(
        id="target_start_weeks",
        text="In how many weeks would you like the work to start?",
        required=False,
    ),
    TextQuestion(
        id="additional_information",
        text="Is there anything else a builder should know before quoting?",
        required=False,
    ),
)

FALLBACK_REASONING = "Fallback question due to AI service unavailability"


def fallback_question(index: int, answered: Iterable[str] = ()) -> Question:
    """Return the bank entry for ``index``, clamped into the bank's range.

    Entries whose id is in ``answered`` are skipped in favour of the next
    unanswered one (wrapping round the bank). When every entry has been
    answered the clamped entry is served under an index-suffixed id, so the
    question is always accepted as new.
    """

    taken = set(answered)
    position = min(max(index, 0), len(FALLBACK_QUESTIONS) - 1)
    for question in FALLBACK_QUESTIONS[position:] + FALLBACK_QUESTIONS[:position]:
        if question.id not in taken:
            return question
    question = FALLBACK_QUESTIONS[position]
    return question.model_copy(update={"id": f"{question.id}_{index}"})
