from __future__ import annotations

import json
from uuid import UUID

import pytest

from sow_server.core.errors import InvalidTransitionError, ModelInvocationError
from sow_server.core.schemas import SOW_SECTION_TITLES
from sow_server.db import models, session_scope

from .conftest import document_reply, register_and_login


def _completed_session(client, headers, project_id, answers=8):
    session = client.post(f"/projects/{project_id}/questionnaire/start", headers=headers).json()
    for n in range(answers):
        response = client.post(
            f"/projects/{project_id}/questionnaire/{session['id']}/response",
            json={"questionId": f"q{n}", "questionText": f"Question {n}", "value": f"answer {n}"},
            headers=headers,
        )
        assert response.status_code == 200, response.text
    return session


def _generate(client, headers, project_id):
    return client.post(f"/projects/{project_id}/sow/generate", headers=headers)


def _task(client, headers, project_id, task_id):
    return client.get(f"/projects/{project_id}/sow/tasks/{task_id}", headers=headers)


def test_generation_produces_eight_section_document(client, services, model, owner_headers, project):
    model.queue(document_reply())
    _completed_session(client, owner_headers, project["id"])

    accepted = _generate(client, owner_headers, project["id"])
    assert accepted.status_code == 202
    assert accepted.json()["status"] == "generating"
    task_id = accepted.json()["taskId"]

    pending = _task(client, owner_headers, project["id"], task_id).json()
    assert pending["status"] == "generating"
    assert pending["progress"] == 0
    assert pending["estimatedCompletion"]
    assert client.get(f"/projects/{project['id']}/sow/{task_id}", headers=owner_headers).status_code == 404

    assert services.queue.drain() == 1

    done = _task(client, owner_headers, project["id"], task_id).json()
    assert done["status"] == "completed"
    assert done["progress"] == 100
    assert done["errorMessage"] is None

    document = client.get(f"/projects/{project['id']}/sow/{task_id}", headers=owner_headers).json()
    assert document["id"] == task_id
    assert document["version"] == "1.0"
    assert [section["title"] for section in document["sections"]] == list(SOW_SECTION_TITLES)
    assert document["projectDetails"]["estimatedValue"] == 45000

    refreshed = client.get(f"/projects/{project['id']}", headers=owner_headers).json()
    assert refreshed["status"] == "sow_ready"


def test_prompt_carries_answers_and_project(client, services, model, owner_headers, project):
    model.queue(document_reply())
    _completed_session(client, owner_headers, project["id"])
    _generate(client, owner_headers, project["id"])

    services.queue.drain()

    prompt = model.prompts[-1]
    assert "Question 3" in prompt and "answer 3" in prompt
    assert "Single storey rear extension" in prompt
    for title in SOW_SECTION_TITLES:
        assert title in prompt


def test_model_failure_marks_task_failed(client, services, model, owner_headers, project):
    model.queue(ModelInvocationError("Model request timed out"))
    _completed_session(client, owner_headers, project["id"])

    task_id = _generate(client, owner_headers, project["id"]).json()["taskId"]
    services.queue.drain()

    failed = _task(client, owner_headers, project["id"], task_id).json()
    assert failed["status"] == "failed"
    assert "timed out" in failed["errorMessage"]
    assert client.get(f"/projects/{project['id']}/sow/{task_id}", headers=owner_headers).status_code == 404

    retry = _generate(client, owner_headers, project["id"])
    assert retry.status_code == 202
    assert retry.json()["taskId"] != task_id


@pytest.mark.parametrize(
    "reply",
    [
        "The scope of work is as follows...",
        json.dumps({"title": "SoW", "sections": [{"title": "Executive Summary", "content": "Short"}]}),
        json.dumps(
            {
                "title": "SoW",
                "sections": [{"title": title, "content": ""} for title in SOW_SECTION_TITLES],
            }
        ),
    ],
)
def test_invalid_document_fails_task(client, services, model, owner_headers, project, reply):
    model.queue(reply)
    _completed_session(client, owner_headers, project["id"])

    task_id = _generate(client, owner_headers, project["id"]).json()["taskId"]
    services.queue.drain()

    failed = _task(client, owner_headers, project["id"], task_id).json()
    assert failed["status"] == "failed"
    assert failed["errorMessage"]
    with session_scope(services.session_factory) as db:
        assert db.get(models.GeneratedDocument, UUID(task_id)) is None


def test_generate_requires_completed_session(client, services, owner_headers, project):
    no_session = _generate(client, owner_headers, project["id"])
    _completed_session(client, owner_headers, project["id"], answers=3)
    incomplete = _generate(client, owner_headers, project["id"])

    assert no_session.status_code == 400
    assert incomplete.status_code == 400
    assert services.queue.pending() == 0
    with session_scope(services.session_factory) as db:
        assert db.query(models.GenerationTask).count() == 0


def test_explicit_completion_allows_generation(client, services, model, owner_headers, project):
    model.queue(document_reply())
    session = _completed_session(client, owner_headers, project["id"], answers=2)
    client.post(f"/projects/{project['id']}/questionnaire/{session['id']}/complete", headers=owner_headers)

    accepted = _generate(client, owner_headers, project["id"])
    services.queue.drain()

    assert accepted.status_code == 202
    assert _task(client, owner_headers, project["id"], accepted.json()["taskId"]).json()["status"] == "completed"


def test_non_owner_polling_is_denied(client, services, owner_headers, project):
    _completed_session(client, owner_headers, project["id"])
    task_id = _generate(client, owner_headers, project["id"]).json()["taskId"]
    intruder = register_and_login(client, email="neighbour@example.com")

    polled = _task(client, intruder, project["id"], task_id)
    fetched = client.get(f"/projects/{project['id']}/sow/{task_id}", headers=intruder)
    generated = _generate(client, intruder, project["id"])

    assert polled.status_code == 403
    assert fetched.status_code == 403
    assert generated.status_code == 403


def test_unknown_task_is_not_found(client, owner_headers, project):
    missing = "11111111-1111-1111-1111-111111111111"

    assert _task(client, owner_headers, project["id"], missing).status_code == 404


def test_completed_task_is_not_regenerated(client, services, model, owner_headers, project):
    model.queue(document_reply())
    _completed_session(client, owner_headers, project["id"])
    task_id = _generate(client, owner_headers, project["id"]).json()["taskId"]
    services.queue.drain()

    services.worker.generate(UUID(task_id))

    assert len(model.prompts) == 1
    assert _task(client, owner_headers, project["id"], task_id).json()["status"] == "completed"


def test_task_transitions_are_one_directional():
    task = models.GenerationTask(status=models.TaskStatus.GENERATING, progress=50)

    task.transition(models.TaskStatus.FAILED, error_message="boom")

    assert task.status == "failed"
    assert task.error_message == "boom"
    with pytest.raises(InvalidTransitionError):
        task.transition(models.TaskStatus.COMPLETED)
    with pytest.raises(InvalidTransitionError):
        models.GenerationTask(status=models.TaskStatus.GENERATING).transition(models.TaskStatus.GENERATING)


def test_completed_transition_sets_full_progress():
    task = models.GenerationTask(status=models.TaskStatus.GENERATING, progress=50)

    task.transition(models.TaskStatus.COMPLETED)

    assert task.progress == 100
    assert task.is_terminal
    with pytest.raises(InvalidTransitionError):
        task.transition(models.TaskStatus.FAILED, error_message="late failure")


def test_completing_again_keeps_project_ready(client, services, model, owner_headers, project):
    model.queue(document_reply())
    session = _completed_session(client, owner_headers, project["id"])
    _generate(client, owner_headers, project["id"])
    services.queue.drain()

    again = client.post(f"/projects/{project['id']}/questionnaire/{session['id']}/complete", headers=owner_headers)

    assert again.status_code == 200
    assert again.json()["isComplete"] is True
    assert again.json()["currentQuestionIndex"] == 8
    assert client.get(f"/projects/{project['id']}", headers=owner_headers).json()["status"] == "sow_ready"


def test_completing_capped_session_advances_draft_project(client, owner_headers, project):
    session = _completed_session(client, owner_headers, project["id"])
    assert client.get(f"/projects/{project['id']}", headers=owner_headers).json()["status"] == "draft"

    done = client.post(f"/projects/{project['id']}/questionnaire/{session['id']}/complete", headers=owner_headers)

    assert done.status_code == 200
    assert client.get(f"/projects/{project['id']}", headers=owner_headers).json()["status"] == "sow_generation"
