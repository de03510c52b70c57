"""
API tests: auth flow, file upload, quiz generation/edit/download and error mapping.
Uses FastAPI TestClient with dependency overrides against a per-test SQLite database
and storage root; the LLM is a scripted client.
"""
import json
from urllib.parse import urlparse

import pytest
from fastapi.testclient import TestClient

from conftest import LECTURE_TEXT, ScriptedLLMClient, StatusError, envelope, question_dict
from quizflow.api.deps import GENERIC_FAILURE_MESSAGE, get_current_user, get_file_service, get_quiz_service
from quizflow.database import get_db
from quizflow.main import app
from quizflow.services.file_service import FileService
from quizflow.services.question_generator import QuestionGenerator
from quizflow.services.quiz_service import QuizService


@pytest.fixture
def llm_client():
    return ScriptedLLMClient()


@pytest.fixture
def client(db, builder, free_user, llm_client, tmp_path):
    """TestClient authenticated as the FREE user, with services bound to the test database."""
    files = FileService(db, upload_dir=tmp_path / "uploads")
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: free_user
    app.dependency_overrides[get_file_service] = lambda: files
    app.dependency_overrides[get_quiz_service] = lambda: QuizService(
        db, builder, generator=QuestionGenerator(llm_client), api_url="http://testserver", files=files
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def uploaded_file(client):
    r = client.post(
        "/files/upload",
        files={"file": ("lecture.txt", LECTURE_TEXT.encode("utf-8"), "text/plain")},
    )
    assert r.status_code == 201, r.text
    return r.json()


def _five(llm_client):
    llm_client.responses.append(envelope(*(question_dict(i) for i in range(1, 6))))


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_register_login_me(db):
    app.dependency_overrides[get_db] = lambda: db
    try:
        c = TestClient(app)
        r = c.post("/auth/register", json={"email": "New@Example.com", "password": "longenough1", "name": "Ann"})
        assert r.status_code == 201, r.text
        assert r.json()["plan"] == "FREE"
        assert r.json()["role"] == "USER"
        assert c.post("/auth/register", json={"email": "new@example.com", "password": "longenough1"}).status_code == 400
        assert c.post("/auth/login", json={"email": "new@example.com", "password": "wrong-pass"}).status_code == 401
        r = c.post("/auth/login", json={"email": "new@example.com", "password": "longenough1"})
        assert r.status_code == 200
        token = r.json()["access_token"]
        r = c.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 200
        assert r.json()["email"] == "new@example.com"
        assert c.get("/auth/me").status_code == 401
        assert c.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401
    finally:
        app.dependency_overrides.clear()


def test_register_short_password_is_422(db):
    app.dependency_overrides[get_db] = lambda: db
    try:
        r = TestClient(app).post("/auth/register", json={"email": "a@example.com", "password": "short"})
        assert r.status_code == 422
    finally:
        app.dependency_overrides.clear()


def test_upload_list_get_delete(client, uploaded_file):
    assert uploaded_file["status"] == "COMPLETED"
    assert uploaded_file["file_type"] == "TXT"
    r = client.get("/files")
    assert r.json()["total"] == 1
    r = client.get(f"/files/{uploaded_file['id']}")
    assert r.status_code == 200
    assert r.json()["character_count"] == len(LECTURE_TEXT)
    assert client.delete(f"/files/{uploaded_file['id']}").status_code == 204
    assert client.get(f"/files/{uploaded_file['id']}").status_code == 404


def test_second_upload_on_free_plan_is_403(client, uploaded_file):
    r = client.post("/files/upload", files={"file": ("more.txt", LECTURE_TEXT.encode("utf-8"), "text/plain")})
    assert r.status_code == 403
    assert "Upgrade" in r.json()["detail"]


def test_upload_bad_type_is_400(client):
    r = client.post("/files/upload", files={"file": ("slide.png", b"\x89PNG....", "image/png")})
    assert r.status_code == 400
    assert "Only PDF, DOCX, and TXT" in r.json()["detail"]


def test_generate_quiz_and_download(client, uploaded_file, llm_client):
    _five(llm_client)
    r = client.post("/quizzes", json={"file_id": uploaded_file["id"], "question_count": 10, "title": "Bio"})
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["quiz"]["question_count"] == 5
    assert body["quiz"]["has_watermark"] is True
    quiz_id = body["quiz"]["id"]
    assert body["download_url"] == f"http://testserver/quizzes/{quiz_id}/download"
    assert body["quiz"]["download_url"] == body["download_url"]
    assert body["quiz"]["questions"][0]["correct_answer"] in body["quiz"]["questions"][0]["options"]

    r = client.get(urlparse(body["download_url"]).path)
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/zip"
    assert r.content[:2] == b"PK"
    assert client.get("/quizzes").json()["total"] == 1


def test_generate_quiz_count_over_30_is_422(client, uploaded_file):
    r = client.post("/quizzes", json={"file_id": uploaded_file["id"], "question_count": 31})
    assert r.status_code == 422


def test_generate_quiz_unknown_file_is_404(client):
    r = client.post("/quizzes", json={"file_id": "00000000-0000-0000-0000-000000000000"})
    assert r.status_code == 404


def test_rate_limited_generation_is_503(client, uploaded_file, llm_client):
    llm_client.responses.append(StatusError(429))
    r = client.post("/quizzes", json={"file_id": uploaded_file["id"]})
    assert r.status_code == 503


def test_generation_failure_is_generic(client, uploaded_file, llm_client):
    llm_client.responses.extend(["not json"])
    r = client.post("/quizzes", json={"file_id": uploaded_file["id"]})
    assert r.status_code == 502
    assert r.json()["detail"] == GENERIC_FAILURE_MESSAGE


def test_update_questions_and_duplicates(client, uploaded_file, llm_client):
    _five(llm_client)
    quiz = client.post("/quizzes", json={"file_id": uploaded_file["id"]}).json()["quiz"]
    edited = quiz["questions"][:2]
    edited[1] = dict(edited[1], text="  " + edited[0]["text"].upper())
    r = client.put(f"/quizzes/{quiz['id']}/questions", json={"questions": edited})
    assert r.status_code == 400
    assert "Duplicate" in r.json()["detail"]

    edited[1] = dict(edited[1], text="A brand new question?")
    r = client.put(f"/quizzes/{quiz['id']}/questions", json={"questions": edited, "filename": "Edited"})
    assert r.status_code == 200, r.text
    assert r.json()["quiz"]["question_count"] == 2
    download_url = r.json()["download_url"]
    assert download_url == f"http://testserver/quizzes/{quiz['id']}/download"
    r = client.get(urlparse(download_url).path)
    assert r.status_code == 200
    assert "edited.zip" in r.headers["content-disposition"]
    assert len(llm_client.calls) == 1


def test_update_with_dangling_answer_is_422(client, uploaded_file, llm_client):
    _five(llm_client)
    quiz = client.post("/quizzes", json={"file_id": uploaded_file["id"]}).json()["quiz"]
    bad = dict(quiz["questions"][0], correct_answer="nowhere")
    r = client.put(f"/quizzes/{quiz['id']}/questions", json={"questions": [bad]})
    assert r.status_code == 422


def test_replace_question(client, uploaded_file, llm_client):
    llm_client.responses.append(json.dumps(question_dict(99)))
    r = client.post(
        "/quizzes/replace-question",
        json={"file_id": uploaded_file["id"], "existing_questions": [
            {"text": "What is X?", "options": ["a", "b", "c", "d"], "correct_answer": "a"}
        ]},
    )
    assert r.status_code == 200, r.text
    assert r.json()["text"] == "Question number 99?"
    assert "What is X?" in llm_client.calls[0]


def test_delete_quiz(client, uploaded_file, llm_client):
    _five(llm_client)
    quiz = client.post("/quizzes", json={"file_id": uploaded_file["id"]}).json()["quiz"]
    assert client.delete(f"/quizzes/{quiz['id']}").status_code == 204
    assert client.get(f"/quizzes/{quiz['id']}").status_code == 404
    assert client.get(f"/quizzes/{quiz['id']}/download").status_code == 404


def test_replace_question_accepts_drafts_mid_edit(client, uploaded_file, llm_client):
    """Existing questions only contribute their text, so half-edited entries are fine."""
    llm_client.responses.append(json.dumps(question_dict(98)))
    r = client.post(
        "/quizzes/replace-question",
        json={"file_id": uploaded_file["id"], "existing_questions": [
            {"text": "Draft with a stale answer?", "options": ["a", "b"], "correct_answer": "gone"},
            {"question": "Legacy shaped draft?"},
            "Plain text question?",
        ]},
    )
    assert r.status_code == 200, r.text
    assert r.json()["text"] == "Question number 98?"
    prompt = llm_client.calls[0]
    assert "Draft with a stale answer?" in prompt
    assert "Legacy shaped draft?" in prompt
    assert "Plain text question?" in prompt
