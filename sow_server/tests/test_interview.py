from __future__ import annotations

from sow_server.core.errors import ModelInvocationError

from .conftest import create_project, question_reply, register_and_login


def _start(client, headers, project_id):
    response = client.post(f"/projects/{project_id}/questionnaire/start", headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _answer(client, headers, project_id, session_id, question_id, value="yes", **extra):
    body = {"questionId": question_id, "value": value}
    body.update(extra)
    return client.post(
        f"/projects/{project_id}/questionnaire/{session_id}/response",
        json=body,
        headers=headers,
    )


def test_start_session_begins_at_zero(client, owner_headers, project):
    session = _start(client, owner_headers, project["id"])

    assert session["currentQuestionIndex"] == 0
    assert session["responses"] == []
    assert session["isComplete"] is False
    assert session["completionPercentage"] == 0


def test_current_session_is_newest(client, owner_headers, project):
    assert client.get(f"/projects/{project['id']}/questionnaire", headers=owner_headers).status_code == 404

    _start(client, owner_headers, project["id"])
    newest = _start(client, owner_headers, project["id"])

    current = client.get(f"/projects/{project['id']}/questionnaire", headers=owner_headers).json()
    assert current["id"] == newest["id"]


def test_index_and_percentage_track_answers_until_cap(client, owner_headers, project):
    session = _start(client, owner_headers, project["id"])

    for n in range(1, 9):
        response = _answer(client, owner_headers, project["id"], session["id"], f"q{n}", value=n)
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["currentQuestionIndex"] == n
        assert body["completionPercentage"] == min(100, 10 * n)
        assert body["isComplete"] is (n == 8)
        assert body["responses"][-1]["questionId"] == f"q{n}"
        assert body["responses"][-1]["value"] == n

    late = _answer(client, owner_headers, project["id"], session["id"], "q9")
    assert late.status_code == 400
    assert "already complete" in late.json()["detail"]


def test_completion_ignores_model_signal(client, owner_headers, project, model):
    model.default = lambda prompt: question_reply("anything_else", is_complete=True)
    session = _start(client, owner_headers, project["id"])

    next_q = client.post(f"/projects/{project['id']}/questionnaire/{session['id']}/next", headers=owner_headers)
    assert next_q.status_code == 200
    assert next_q.json()["isComplete"] is False
    assert next_q.json()["isAIGenerated"] is True

    _answer(client, owner_headers, project["id"], session["id"], "anything_else")
    current = client.get(f"/projects/{project['id']}/questionnaire", headers=owner_headers).json()
    assert current["isComplete"] is False


def test_malformed_model_output_serves_fallback(client, owner_headers, project, model):
    model.default = "definitely not json"
    session = _start(client, owner_headers, project["id"])
    url = f"/projects/{project['id']}/questionnaire/{session['id']}/next"

    first = client.post(url, headers=owner_headers).json()
    second = client.post(url, headers=owner_headers).json()

    assert first["isAIGenerated"] is False
    assert first["question"]["id"] == "project_priority"
    assert first["question"] == second["question"]
    assert first["reasoning"] == "Fallback question due to AI service unavailability"


def test_prompt_includes_uploaded_documents(client, owner_headers, project, model):
    model.default = lambda prompt: question_reply("drainage")
    upload = client.post(
        f"/projects/{project['id']}/files",
        files={"file": ("survey.txt", b"Soakaway located under the patio", "text/plain")},
        headers=owner_headers,
    )
    assert upload.status_code == 201, upload.text
    session = _start(client, owner_headers, project["id"])

    client.post(f"/projects/{project['id']}/questionnaire/{session['id']}/next", headers=owner_headers)

    assert "Soakaway located under the patio" in model.prompts[-1]
    assert "### Document: survey.txt" in model.prompts[-1]


def test_duplicate_submission_is_rejected(client, owner_headers, project):
    session = _start(client, owner_headers, project["id"])

    assert _answer(client, owner_headers, project["id"], session["id"], "q1", questionIndex=0).status_code == 200
    replay = _answer(client, owner_headers, project["id"], session["id"], "q1")
    stale = _answer(client, owner_headers, project["id"], session["id"], "q2", questionIndex=0)

    assert replay.status_code == 400
    assert stale.status_code == 400
    current = client.get(f"/projects/{project['id']}/questionnaire", headers=owner_headers).json()
    assert current["currentQuestionIndex"] == 1
    assert len(current["responses"]) == 1


def test_answer_alias_and_question_text_are_stored(client, owner_headers, project):
    session = _start(client, owner_headers, project["id"])

    response = _answer(
        client,
        owner_headers,
        project["id"],
        session["id"],
        "project_priority",
        questionText="What is your main priority for this project?",
    )
    body = client.post(
        f"/projects/{project['id']}/questionnaire/{session['id']}/response",
        json={"questionId": "specific_requirements", "answer": "Keep the fireplace"},
        headers=owner_headers,
    ).json()

    assert response.json()["responses"][0]["questionText"] == "What is your main priority for this project?"
    assert body["responses"][1]["value"] == "Keep the fireplace"
    assert "timestamp" in body["responses"][1]


def test_explicit_complete_moves_project_forward(client, owner_headers, project):
    session = _start(client, owner_headers, project["id"])
    _answer(client, owner_headers, project["id"], session["id"], "q1")

    done = client.post(f"/projects/{project['id']}/questionnaire/{session['id']}/complete", headers=owner_headers)

    assert done.status_code == 200
    assert done.json()["isComplete"] is True
    assert done.json()["completionPercentage"] == 100
    assert done.json()["currentQuestionIndex"] == 1
    refreshed = client.get(f"/projects/{project['id']}", headers=owner_headers).json()
    assert refreshed["status"] == "sow_generation"

    next_q = client.post(f"/projects/{project['id']}/questionnaire/{session['id']}/next", headers=owner_headers)
    assert next_q.status_code == 400


def test_non_owner_is_denied_even_for_missing_project(client, owner_headers, project):
    intruder = register_and_login(client, email="intruder@example.com")
    session = _start(client, owner_headers, project["id"])

    assert client.post(f"/projects/{project['id']}/questionnaire/start", headers=intruder).status_code == 403
    assert _answer(client, intruder, project["id"], session["id"], "q1").status_code == 403
    missing = "00000000-0000-0000-0000-000000000000"
    assert client.get(f"/projects/{missing}/questionnaire", headers=intruder).status_code == 403


def test_unknown_session_is_not_found(client, owner_headers, project):
    other = create_project(client, owner_headers, name="Garage")
    session = _start(client, owner_headers, other["id"])

    response = _answer(client, owner_headers, project["id"], session["id"], "q1")

    assert response.status_code == 404


def test_requests_without_token_are_unauthorised(client, project):
    assert client.post(f"/projects/{project['id']}/questionnaire/start").status_code == 401


def test_fallback_skips_question_answered_earlier(client, owner_headers, project, model):
    model.queue(question_reply("specific_requirements"), ModelInvocationError("Model request timed out"))
    session = _start(client, owner_headers, project["id"])
    url = f"/projects/{project['id']}/questionnaire/{session['id']}/next"

    first = client.post(url, headers=owner_headers).json()
    assert first["question"]["id"] == "specific_requirements"
    assert _answer(client, owner_headers, project["id"], session["id"], "specific_requirements").status_code == 200

    second = client.post(url, headers=owner_headers).json()
    assert second["isAIGenerated"] is False
    assert second["question"]["id"] == "material_preferences"
    accepted = _answer(client, owner_headers, project["id"], session["id"], second["question"]["id"])
    assert accepted.status_code == 200, accepted.text
    assert accepted.json()["currentQuestionIndex"] == 2


def test_interview_finishes_on_fallback_questions_alone(client, owner_headers, project):
    session = _start(client, owner_headers, project["id"])
    url = f"/projects/{project['id']}/questionnaire/{session['id']}/next"

    seen = []
    for _ in range(8):
        question = client.post(url, headers=owner_headers).json()["question"]
        seen.append(question["id"])
        response = _answer(client, owner_headers, project["id"], session["id"], question["id"])
        assert response.status_code == 200, response.text

    assert len(set(seen)) == 8
    assert response.json()["isComplete"] is True


def test_reupload_replaces_previous_file(client, owner_headers, project, model):
    model.default = lambda prompt: question_reply("drainage")
    url = f"/projects/{project['id']}/files"
    for body in (b"Soakaway under the patio", b"Soakaway moved to the lawn"):
        upload = client.post(url, files={"file": ("survey.txt", body, "text/plain")}, headers=owner_headers)
        assert upload.status_code == 201, upload.text
    session = _start(client, owner_headers, project["id"])

    client.post(f"/projects/{project['id']}/questionnaire/{session['id']}/next", headers=owner_headers)

    listed = client.get(url, headers=owner_headers).json()
    assert len(listed) == 1
    assert listed[0]["size"] == len(b"Soakaway moved to the lawn")
    prompt = model.prompts[-1]
    assert prompt.count("### Document: survey.txt") == 1
    assert "moved to the lawn" in prompt
    assert "under the patio" not in prompt
