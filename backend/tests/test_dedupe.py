"""
Unit tests for the duplicate-question check.
"""
import pytest

from quizflow.errors import DuplicateQuestionsError, InputError
from quizflow.schemas.question import Question
from quizflow.services.dedupe import ensure_unique_questions, find_duplicate_questions


def _q(text):
    return Question(text=text, options=["a", "b", "c", "d"], correct_answer="a")


def test_case_and_whitespace_variants_are_duplicates():
    questions = [_q("What is X?"), _q("what is x? ")]
    assert find_duplicate_questions(questions) == [(0, 1)]


def test_distinct_questions_pass():
    questions = [_q("What is X?"), _q("What is Y?")]
    assert find_duplicate_questions(questions) == []
    ensure_unique_questions(questions)


def test_ensure_unique_raises_input_error_with_positions():
    questions = [_q("One?"), _q("Two?"), _q(" one? ")]
    with pytest.raises(DuplicateQuestionsError) as exc:
        ensure_unique_questions(questions)
    assert isinstance(exc.value, InputError)
    assert exc.value.duplicates == [(0, 2)]
    assert "1 and 3" in str(exc.value)
