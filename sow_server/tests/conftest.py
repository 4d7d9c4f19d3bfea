"""Shared fixtures: in-memory database, temp storage and a scripted model."""

from __future__ import annotations

import json
from typing import Callable, List, Optional, Union

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from sow_server.adapters.storage import LocalStorageBackend
from sow_server.api import create_app
from sow_server.core.errors import ModelInvocationError
from sow_server.core.llm import ModelClient
from sow_server.core.schemas import SOW_SECTION_TITLES
from sow_server.db import Base, create_session_factory
from sow_server.db import models  # noqa: F401  register tables
from sow_server.dependencies import build_services


Reply = Union[str, Exception, Callable[[str], str]]


class ScriptedModel(ModelClient):
    """Replays queued replies; with nothing queued it uses ``default``."""

    def __init__(self, default: Optional[Reply] = None) -> None:
        self.replies: List[Reply] = []
        self.default = default
        self.prompts: List[str] = []

    def queue(self, *replies: Reply) -> "ScriptedModel":
        self.replies.extend(replies)
        return self

    def invoke(self, prompt: str, max_tokens: int) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else self.default
        if reply is None:
            raise ModelInvocationError("No scripted reply")
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(prompt)
        return reply


def question_reply(question_id: str, *, qtype: str = "text", is_complete: bool = False, **extra) -> str:
    question = {"id": question_id, "text": f"Tell us about {question_id}?", "type": qtype, "required": True}
    question.update(extra)
    return json.dumps({"question": question, "isComplete": is_complete, "reasoning": "Needed for scoping"})


def document_reply(title: str = "Scope of Work - Kitchen Extension") -> str:
    return json.dumps(
        {
            "title": title,
            "sections": [
                {"title": section, "content": f"{section} content for the works."}
                for section in SOW_SECTION_TITLES
            ],
            "projectDetails": {"projectType": "extension", "estimatedValue": 45000},
        }
    )


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield create_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture
def storage(tmp_path):
    return LocalStorageBackend(tmp_path / "store")


@pytest.fixture
def model():
    return ScriptedModel()


@pytest.fixture
def services(session_factory, storage, model):
    container = build_services(
        session_factory=session_factory,
        storage=storage,
        model=model,
        autostart=False,
    )
    yield container
    container.shutdown()


@pytest.fixture
def client(services):
    return TestClient(create_app(services))


def register_and_login(client: TestClient, email: str = "owner@example.com", password: str = "correct-horse") -> dict:
    response = client.post("/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


def create_project(client: TestClient, headers: dict, **overrides) -> dict:
    payload = {
        "name": "Kitchen extension",
        "projectType": "extension",
        "description": "Single storey rear extension with open-plan kitchen",
        "requirements": {"budget": {"min": 30000, "max": 50000}, "timeline": "3 months"},
        "propertyAddress": {"line1": "1 High Street", "city": "Leeds", "postcode": "LS1 1AA"},
    }
    payload.update(overrides)
    response = client.post("/projects", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def owner_headers(client):
    return register_and_login(client)


@pytest.fixture
def project(client, owner_headers):
    return create_project(client, owner_headers)
