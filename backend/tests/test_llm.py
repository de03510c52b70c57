"""
Tests for the LLM layer: tenacity retry wrapper, client selection, and the mock client
feeding the real question generator.
"""
import pytest

from conftest import LECTURE_TEXT, ScriptedLLMClient, StatusError
from quizflow import llm
from quizflow.config import settings
from quizflow.errors import LLMResponseError, UpstreamMisconfiguredError
from quizflow.llm.base import classify_llm_error, is_retryable, status_code_of
from quizflow.llm.llm_service import RetryingLLMClient
from quizflow.llm.mock_impl import MockLLMClient
from quizflow.services.question_generator import QuestionGenerator


def _retrying(responses, attempts=3):
    inner = ScriptedLLMClient(responses)
    return inner, RetryingLLMClient(inner, max_attempts=attempts, wait_min=0, wait_max=0)


def test_retries_on_rate_limit_then_succeeds():
    inner, client = _retrying([StatusError(429), StatusError(503), '{"questions": []}'])
    assert client.complete_json("sys", "prompt") == '{"questions": []}'
    assert len(inner.calls) == 3


def test_gives_up_after_max_attempts_and_reraises():
    inner, client = _retrying([StatusError(500)] * 3)
    with pytest.raises(StatusError):
        client.complete_json("sys", "prompt")
    assert len(inner.calls) == 3


def test_auth_failure_is_not_retried():
    inner, client = _retrying([StatusError(401), "unused"])
    with pytest.raises(StatusError):
        client.complete_json("sys", "prompt")
    assert len(inner.calls) == 1


def test_domain_errors_are_not_retried():
    inner, client = _retrying([LLMResponseError("empty"), "unused"])
    with pytest.raises(LLMResponseError):
        client.complete_json("sys", "prompt")
    assert len(inner.calls) == 1


def test_status_code_sources():
    class WithResponse(Exception):
        class response:
            status_code = 502

    class WithCode(Exception):
        code = 429

    assert status_code_of(WithResponse()) == 502
    assert status_code_of(WithCode()) == 429
    assert status_code_of(ValueError("x")) is None
    assert is_retryable(WithResponse())
    assert not is_retryable(ValueError("x"))


def test_classify_keeps_domain_errors():
    err = LLMResponseError("bad")
    assert classify_llm_error(err) is err


def test_no_key_outside_production_uses_mock(monkeypatch):
    monkeypatch.setattr(settings, "env", "development")
    monkeypatch.setattr(settings, "llm_provider", "openai")
    monkeypatch.setattr(settings, "openai_api_key", "")
    assert isinstance(llm.get_llm_client(), MockLLMClient)


def test_no_key_in_production_is_misconfigured(monkeypatch):
    monkeypatch.setattr(settings, "env", "production")
    monkeypatch.setattr(settings, "llm_provider", "gemini")
    monkeypatch.setattr(settings, "gemini_api_key", "")
    with pytest.raises(UpstreamMisconfiguredError):
        llm.get_llm_client()


def test_unsupported_provider_is_misconfigured(monkeypatch):
    monkeypatch.setattr(settings, "llm_provider", "claude")
    with pytest.raises(UpstreamMisconfiguredError):
        llm.get_llm_client()


def test_key_present_wraps_client_in_retries(monkeypatch):
    monkeypatch.setattr(settings, "llm_provider", "openai")
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    client = llm.get_llm_client()
    assert isinstance(client, RetryingLLMClient)
    assert client.model_name == settings.openai_model


def test_mock_client_output_passes_generator_validation():
    generator = QuestionGenerator(MockLLMClient())
    questions = generator.generate_questions(LECTURE_TEXT, 4, "Mock")
    assert len(questions) == 4
    assert generator.generate_questions(LECTURE_TEXT, 4, "Mock") == questions
    assert generator.generate_one(LECTURE_TEXT, [q.text for q in questions]).correct_answer
