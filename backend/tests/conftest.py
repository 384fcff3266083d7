"""Shared fixtures: a throwaway SQLite database, local storage dir and a scripted AI."""

import os
import sys
import tempfile
import uuid

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

_TMP = tempfile.mkdtemp(prefix="study-tracker-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["STORAGE_DIR"] = os.path.join(_TMP, "storage")
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["ORACLE_GENAI_COMPARTMENT_ID"] = ""

from fastapi.testclient import TestClient  # noqa: E402

from study_tracker.database import Base, engine  # noqa: E402
from study_tracker.main import app  # noqa: E402
from study_tracker.middleware.rate_limit import limiter  # noqa: E402
from study_tracker.services import (  # noqa: E402
    scheduler,
    shared_courses,
    study_materials,
    study_session,
    worklog_vision,
)

limiter.enabled = False

AI_MODULES = (scheduler, shared_courses, study_materials, study_session, worklog_vision)


class FakeAI:
    """Stands in for the chat client; replies are consumed in order."""

    def __init__(self):
        self.replies: list = []
        self.calls: list[dict] = []

    def queue(self, *replies):
        self.replies.extend(replies)

    async def __call__(self, system, messages, max_tokens=400, temperature=0.7, images=None):
        self.calls.append({
            "system": system,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "images": images,
        })
        if not self.replies:
            raise AssertionError("Unexpected AI call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def fake_ai(monkeypatch):
    ai = FakeAI()
    for module in AI_MODULES:
        monkeypatch.setattr(module, "chat", ai)
    return ai


@pytest.fixture
def client():
    return TestClient(app)


def register(client, email: str | None = None, password: str = "secret123") -> dict:
    """Register a user and return auth headers for it."""
    email = email or f"{uuid.uuid4().hex[:8]}@example.com"
    resp = client.post("/api/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def auth(client):
    return register(client)
