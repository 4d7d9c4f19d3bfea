from __future__ import annotations

import json

import pytest

from sow_server.core.errors import ModelInvocationError, ResponseParseError
from sow_server.core.question_bank import FALLBACK_REASONING, fallback_question
from sow_server.core.questions import QuestionGenerator, parse_question_response

from .conftest import ScriptedModel, question_reply


PROJECT = {"projectType": "bathroom", "description": "Full refit", "budget": {"min": 8000, "max": 12000}}


def _generate(model, index=0, responses=()):
    return QuestionGenerator(model).generate_next_question(PROJECT, list(responses), index)


def test_valid_reply_is_returned_as_ai_question():
    model = ScriptedModel().queue(question_reply("tiling_extent", qtype="multiple_choice", options=["Floor", "Walls", "Both"]))

    result = _generate(model, index=2)

    assert result.is_ai_generated
    assert result.fallback_reason is None
    assert result.question.id == "tiling_extent"
    assert result.question.options == ["Floor", "Walls", "Both"]
    assert not result.is_complete
    assert "Current Question Index: 2" in model.prompts[0]


def test_fenced_json_is_accepted():
    reply = "```json\n" + question_reply("extractor_fan", qtype="boolean") + "\n```"

    result = _generate(ScriptedModel().queue(reply))

    assert result.is_ai_generated
    assert result.question.type == "boolean"


@pytest.mark.parametrize(
    "reply",
    [
        "Sure! Here is your next question: how big is the room?",
        "[]",
        json.dumps({"question": {"id": "q", "text": "Pick one", "type": "multiple_choice"}}),
        json.dumps({"question": {"id": "q", "text": "Pick one", "type": "multiple_choice", "options": []}}),
        json.dumps({"question": {"id": "q", "text": "Why?", "type": "essay"}}),
        json.dumps({"question": {"id": " ", "text": "Why?", "type": "text"}}),
        json.dumps({"isComplete": False}),
    ],
)
def test_invalid_replies_fall_back_deterministically(reply):
    first = _generate(ScriptedModel().queue(reply), index=3)
    second = _generate(ScriptedModel().queue(reply), index=3)

    assert not first.is_ai_generated
    assert first.question == fallback_question(3)
    assert first.question == second.question
    assert first.reasoning == FALLBACK_REASONING
    assert first.fallback_reason


def test_invocation_failure_falls_back():
    model = ScriptedModel().queue(ModelInvocationError("Rate limited by model provider"))

    result = _generate(model, index=1)

    assert not result.is_ai_generated
    assert result.question == fallback_question(1)
    assert "Rate limited" in result.fallback_reason


def test_unconfigured_model_falls_back():
    result = _generate(None, index=9)

    assert not result.is_ai_generated
    assert result.question == fallback_question(7)
    assert result.fallback_reason == "Generative model is not configured"


def test_hard_cap_overrides_model_signal():
    early = _generate(ScriptedModel().queue(question_reply("q1", is_complete=True)), index=2)
    final = _generate(ScriptedModel().queue(question_reply("q8", is_complete=False)), index=7)

    assert early.is_ai_generated and not early.is_complete
    assert final.is_ai_generated and final.is_complete


def test_fallback_result_reports_completion_at_cap():
    result = QuestionGenerator(ScriptedModel(), hard_cap=3).generate_next_question(PROJECT, [], 2)

    assert not result.is_ai_generated
    assert result.is_complete


def test_repeated_question_id_falls_back():
    responses = [{"questionId": "tiling_extent", "value": "Both"}]
    model = ScriptedModel().queue(question_reply("tiling_extent"))

    result = _generate(model, index=1, responses=responses)

    assert not result.is_ai_generated
    assert "tiling_extent" in result.fallback_reason


def test_wire_format_uses_camel_case_aliases():
    result = _generate(None, index=0)

    payload = result.model_dump(by_alias=True)

    assert payload["isAIGenerated"] is False
    assert payload["isComplete"] is False
    assert payload["question"]["options"] == ["Quality", "Speed", "Budget", "Minimal disruption"]


def test_parser_rejects_non_object():
    with pytest.raises(ResponseParseError):
        parse_question_response('"just a string"')


def test_fallback_avoids_answered_question_ids():
    responses = [{"questionId": "specific_requirements", "value": "Keep the fireplace"}]
    model = ScriptedModel().queue(ModelInvocationError("Model request timed out"))

    result = _generate(model, index=1, responses=responses)

    assert not result.is_ai_generated
    assert result.question.id == "material_preferences"


@pytest.mark.parametrize("hard_cap", [0, 9])
def test_hard_cap_must_fit_the_fallback_bank(hard_cap):
    with pytest.raises(ValueError):
        QuestionGenerator(ScriptedModel(), hard_cap=hard_cap)
