"""
Duplicate-question check run before a quiz is saved.
Two questions collide when their stems match after trimming and case-folding.
"""
from typing import Sequence

from quizflow.errors import DuplicateQuestionsError
from quizflow.schemas.question import Question


def normalize_stem(text: str) -> str:
    return (text or "").strip().casefold()


def find_duplicate_questions(questions: Sequence[Question]) -> list[tuple[int, int]]:
    """Return (first_index, duplicate_index) pairs; order follows the input."""
    first_seen: dict[str, int] = {}
    duplicates = []
    for i, q in enumerate(questions):
        key = normalize_stem(q.text)
        if key in first_seen:
            duplicates.append((first_seen[key], i))
        else:
            first_seen[key] = i
    return duplicates


def ensure_unique_questions(questions: Sequence[Question]) -> None:
    """Raise DuplicateQuestionsError if any two stems collide."""
    duplicates = find_duplicate_questions(questions)
    if duplicates:
        raise DuplicateQuestionsError(duplicates)
