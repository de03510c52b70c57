"""
Shared fixtures: a throwaway SQLite database and storage root per test, users on each plan,
and a scripted LLM client so no test talks to a real provider.
"""
import json

import pytest
from sqlalchemy.orm import sessionmaker

from quizflow.database import create_db_engine, init_db
from quizflow.models.user import User
from quizflow.schemas.question import Question
from quizflow.services.auth import hash_password
from quizflow.services.qti_package import QtiPackageBuilder

LECTURE_TEXT = (
    "Photosynthesis converts light energy into chemical energy stored in glucose. "
    "It takes place in the chloroplasts of plant cells and releases oxygen as a by-product. "
) * 5


class ScriptedLLMClient:
    """Returns queued responses in order; an Exception in the queue is raised instead."""

    model_name = "scripted"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def complete_json(self, system, prompt):
        self.calls.append(prompt)
        if not self.responses:
            raise AssertionError("ScriptedLLMClient ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class StatusError(Exception):
    """Stand-in for an SDK error carrying an HTTP status."""

    def __init__(self, status_code, message="upstream error"):
        super().__init__(message)
        self.status_code = status_code


def question_dict(i, explanation="Because it is."):
    options = [f"Answer {i}{label}" for label in "ABCD"]
    return {
        "question": f"Question number {i}?",
        "options": options,
        "correctAnswer": options[i % 4],
        "explanation": explanation,
    }


def envelope(*questions):
    return json.dumps({"questions": list(questions)})


def make_questions(n, start=1):
    return [Question.model_validate(question_dict(i)) for i in range(start, start + n)]


@pytest.fixture
def engine(tmp_path):
    eng = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def builder(storage_root):
    return QtiPackageBuilder(storage_root)


def _make_user(db, plan, email):
    user = User(email=email, password_hash=hash_password("testpass123"), plan=plan)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def free_user(db):
    return _make_user(db, "FREE", "free@tests.example.com")


@pytest.fixture
def pro_user(db):
    return _make_user(db, "PRO", "pro@tests.example.com")
