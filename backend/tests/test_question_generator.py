"""
Tests for QuestionGenerator with a scripted LLM client: envelope validation, per-entry
filtering, shortfall backfill, count limits and upstream error classification.
"""
import json

import pytest

from conftest import LECTURE_TEXT, ScriptedLLMClient, StatusError, envelope, question_dict
from quizflow.errors import (
    InputError,
    LLMResponseError,
    QuestionGenerationError,
    QuestionShortfallError,
    UpstreamMisconfiguredError,
    UpstreamSaturatedError,
)
from quizflow.services.question_generator import QuestionGenerator, parse_questions_envelope


def _invalid(i):
    bad = question_dict(i)
    bad["correctAnswer"] = "not one of the options"
    return bad


def test_all_valid_no_backfill():
    client = ScriptedLLMClient([envelope(*(question_dict(i) for i in range(1, 6)))])
    questions = QuestionGenerator(client).generate_questions(LECTURE_TEXT, 5, "Bio")
    assert len(questions) == 5
    assert len(client.calls) == 1
    assert questions[0].text == "Question number 1?"
    assert questions[0].correct_answer in questions[0].options


def test_extra_entries_are_ignored():
    client = ScriptedLLMClient([envelope(*(question_dict(i) for i in range(1, 8)))])
    questions = QuestionGenerator(client).generate_questions(LECTURE_TEXT, 5, "Bio")
    assert [q.text for q in questions] == [f"Question number {i}?" for i in range(1, 6)]


def test_three_of_five_triggers_exactly_two_backfills():
    first = envelope(question_dict(1), _invalid(2), question_dict(3), _invalid(4), question_dict(5))
    client = ScriptedLLMClient([first, json.dumps(question_dict(6)), envelope(question_dict(7))])
    questions = QuestionGenerator(client).generate_questions(LECTURE_TEXT, 5, "Bio")
    assert len(questions) == 5
    assert len(client.calls) == 3
    # backfill prompts list what has been accepted so far
    assert "Question number 1?" in client.calls[1]
    assert "Question number 6?" in client.calls[2]


def test_failing_backfills_raise_shortfall():
    first = envelope(question_dict(1), _invalid(2), question_dict(3), _invalid(4), question_dict(5))
    client = ScriptedLLMClient([first, "not json at all", json.dumps(_invalid(9))])
    with pytest.raises(QuestionShortfallError) as exc:
        QuestionGenerator(client).generate_questions(LECTURE_TEXT, 5, "Bio")
    assert str(exc.value) == "Generated 3 of 5 questions"
    assert (exc.value.achieved, exc.value.requested) == (3, 5)
    assert len(client.calls) == 3


@pytest.mark.parametrize("count", [0, 31, -1, True])
def test_count_outside_limits_is_input_error(count):
    client = ScriptedLLMClient()
    with pytest.raises(InputError):
        QuestionGenerator(client).generate_questions(LECTURE_TEXT, count, "Bio")
    assert client.calls == []


@pytest.mark.parametrize("raw", ["", "not json", '{"items": []}', '{"questions": "nope"}', "[1, 2]"])
def test_bad_envelope_rejects_whole_response(raw):
    client = ScriptedLLMClient([raw])
    with pytest.raises(LLMResponseError):
        QuestionGenerator(client).generate_questions(LECTURE_TEXT, 2, "Bio")
    assert len(client.calls) == 1


def test_markdown_fences_are_stripped():
    raw = "```json\n" + envelope(question_dict(1)) + "\n```"
    assert parse_questions_envelope(raw)[0]["question"] == "Question number 1?"


def test_rate_limit_maps_to_upstream_saturated():
    client = ScriptedLLMClient([StatusError(429, "Too many requests")])
    with pytest.raises(UpstreamSaturatedError):
        QuestionGenerator(client).generate_questions(LECTURE_TEXT, 2, "Bio")


@pytest.mark.parametrize("code", [401, 403])
def test_auth_failure_maps_to_upstream_misconfigured(code):
    client = ScriptedLLMClient([StatusError(code, "bad key")])
    with pytest.raises(UpstreamMisconfiguredError):
        QuestionGenerator(client).generate_questions(LECTURE_TEXT, 2, "Bio")


def test_other_failures_map_to_question_generation_error():
    client = ScriptedLLMClient([RuntimeError("connection reset")])
    with pytest.raises(QuestionGenerationError) as exc:
        QuestionGenerator(client).generate_questions(LECTURE_TEXT, 2, "Bio")
    assert isinstance(exc.value.__cause__, RuntimeError)


def test_long_content_is_truncated():
    client = ScriptedLLMClient([envelope(question_dict(1))])
    QuestionGenerator(client, max_prompt_chars=50).generate_questions("x" * 500, 1, "Bio")
    assert "x" * 51 not in client.calls[0]
    assert "(content truncated)" in client.calls[0]


def test_generate_one_lists_existing_questions():
    client = ScriptedLLMClient([json.dumps(question_dict(8))])
    question = QuestionGenerator(client).generate_one(LECTURE_TEXT, ["What is X?", "  "])
    assert question.text == "Question number 8?"
    assert "- What is X?" in client.calls[0]
    assert "exactly 1 new" in client.calls[0]


def test_generate_one_invalid_question_is_generation_error():
    client = ScriptedLLMClient([json.dumps(_invalid(1))])
    with pytest.raises(QuestionGenerationError, match="Invalid question format"):
        QuestionGenerator(client).generate_one(LECTURE_TEXT, [])
