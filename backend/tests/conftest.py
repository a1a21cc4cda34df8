"""Shared fixtures: a throwaway SQLite database and an authenticated API client."""

import os
import sys
import tempfile

_TMP = tempfile.mkdtemp(prefix="curriculum_ai_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["RATE_LIMIT_ENABLED"] = "false"
# Keep real providers out of the test run
os.environ["ORACLE_GENAI_COMPARTMENT_ID"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient

from curriculum_ai.database import SessionLocal, init_db
from curriculum_ai.main import app

PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


@pytest.fixture(autouse=True)
def fresh_db():
    init_db(reset=True)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def spawned(monkeypatch):
    """Capture background generation requests instead of running them."""
    from curriculum_ai.services import lesson_generator

    calls = []

    def fake_spawn(lesson_id, *args, **kwargs):
        calls.append({"lesson_id": lesson_id, "args": args, **kwargs})

    monkeypatch.setattr(lesson_generator, "spawn_generation", fake_spawn)
    return calls


def register_and_login(client, email, role, password="secret123"):
    r = client.post("/api/auth/register", json={
        "email": email,
        "password": password,
        "role": role,
        "full_name": email.split("@")[0].title(),
    })
    assert r.status_code == 201, r.text
    r = client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def teacher(client):
    return register_and_login(client, "teacher@school.edu", "teacher")


@pytest.fixture
def student(client):
    return register_and_login(client, "student@school.edu", "student")


def upload_lesson(client, headers, title="Photosynthesis", **extra):
    data = {
        "title": title,
        "description": "How plants turn light into energy",
        "subject": "Biology",
        "grade_level": "7",
    }
    data.update({k: str(v).lower() if isinstance(v, bool) else v for k, v in extra.items()})
    r = client.post(
        "/api/lessons",
        headers=headers,
        data=data,
        files={"file": ("lesson.pdf", PDF_BYTES, "application/pdf")},
    )
    assert r.status_code == 201, r.text
    return r.json()


def create_classroom(client, headers, name="Period 3"):
    r = client.post("/api/classrooms", headers=headers, json={"name": name, "grade_level": "7"})
    assert r.status_code == 201, r.text
    return r.json()


def join_classroom(client, headers, join_code):
    r = client.post("/api/classrooms/join", headers=headers, json={"join_code": join_code})
    assert r.status_code == 200, r.text
    return r.json()
