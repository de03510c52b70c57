"""
Question generation: lecture text -> validated multiple-choice questions via the LLM.

The response envelope is validated once with pydantic (a bad envelope rejects the
whole response); each entry is then validated on its own and invalid entries are
dropped. Missing questions are backfilled with one single-question call each.
"""
import json
import logging
from typing import Any, Iterable

from pydantic import BaseModel, ValidationError

from quizflow.errors import (
    InputError,
    LLMResponseError,
    QuestionGenerationError,
    QuestionShortfallError,
)
from quizflow.llm.base import LLMClient, classify_llm_error
from quizflow.schemas.question import Question
from quizflow.schemas.quiz import MAX_QUESTIONS_PER_QUIZ
from quizflow.services.dedupe import normalize_stem

logger = logging.getLogger(__name__)

MIN_QUESTIONS = 1
DEFAULT_MAX_PROMPT_CHARS = 4000

SYSTEM_PROMPT = "You are an expert educator who creates high-quality quiz questions. Always respond with valid JSON only."

_JSON_SHAPE = """{
  "questions": [
    {
      "question": "What is...?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": "Option A",
      "explanation": "Brief explanation of why this is correct"
    }
  ]
}"""


class _QuestionsEnvelope(BaseModel):
    questions: list[Any]


def _strip_json_fences(text: str) -> str:
    """Remove markdown code fences and leading/trailing text around the object."""
    t = text.strip()
    if t.startswith("```"):
        lines = t.split("\n")[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        t = "\n".join(lines)
    start = t.find("{")
    end = t.rfind("}")
    if start != -1 and end > start:
        t = t[start : end + 1]
    return t.strip()


def _load_json(raw: str) -> Any:
    if not raw or not raw.strip():
        raise LLMResponseError("Empty response from LLM")
    try:
        return json.loads(_strip_json_fences(raw))
    except json.JSONDecodeError as e:
        logger.warning("LLM returned invalid JSON (%s): %s", e, raw[:200])
        raise LLMResponseError("Invalid response format from LLM") from e


def parse_questions_envelope(raw: str) -> list[Any]:
    """Return the raw entries of {"questions": [...]}; LLMResponseError if the envelope is wrong."""
    data = _load_json(raw)
    try:
        return _QuestionsEnvelope.model_validate(data).questions
    except ValidationError as e:
        raise LLMResponseError("Invalid response format from LLM: expected an object with a 'questions' list") from e


class QuestionGenerator:
    def __init__(self, client: LLMClient, max_prompt_chars: int = DEFAULT_MAX_PROMPT_CHARS):
        self.client = client
        self.max_prompt_chars = max_prompt_chars

    def _content(self, text: str) -> str:
        if len(text) <= self.max_prompt_chars:
            return text
        return text[: self.max_prompt_chars] + " ...(content truncated)"

    def _complete(self, prompt: str) -> str:
        try:
            return self.client.complete_json(SYSTEM_PROMPT, prompt)
        except Exception as e:
            err = classify_llm_error(e)
            if err is e:
                raise
            logger.error("LLM call failed (%s): %s", type(err).__name__, e)
            raise err from e

    def generate_questions(self, text: str, count: int, title: str) -> list[Question]:
        """
        Generate exactly `count` questions. Raises InputError for count outside [1, 30],
        LLMResponseError for an unusable envelope, QuestionShortfallError when backfill
        cannot make up the difference, and the upstream errors from classify_llm_error.
        """
        if isinstance(count, bool) or not isinstance(count, int) or not MIN_QUESTIONS <= count <= MAX_QUESTIONS_PER_QUIZ:
            raise InputError(f"Question count must be between {MIN_QUESTIONS} and {MAX_QUESTIONS_PER_QUIZ}")
        logger.info("Generating quiz questions: text_len=%s count=%s title=%r", len(text), count, title)
        prompt = f"""You are an expert quiz creator. Generate {count} multiple-choice questions based on the following content.

Title: {title}

Content:
{self._content(text)}

Requirements:
1. Generate exactly {count} multiple-choice questions
2. Each question should have 4 options (A, B, C, D)
3. The correct answer must be copied verbatim from the options
4. Add a brief explanation for the correct answer
5. Questions should test comprehension and key concepts
6. Ensure variety in question difficulty and topics covered; do not repeat questions

Return your response as a JSON object in this exact format:
{_JSON_SHAPE}"""
        entries = parse_questions_envelope(self._complete(prompt))

        accepted: list[Question] = []
        for index, entry in enumerate(entries):
            if len(accepted) >= count:
                break
            try:
                accepted.append(Question.model_validate(entry))
            except ValidationError as e:
                logger.warning("Discarding invalid question at index %s: %s", index, e.errors()[0].get("msg", e))

        missing = count - len(accepted)
        if missing:
            logger.warning("LLM returned %s of %s valid questions; backfilling %s", len(accepted), count, missing)
            for _ in range(missing):
                try:
                    accepted.append(self.generate_one(text, [q.text for q in accepted]))
                except QuestionGenerationError as e:
                    logger.warning("Backfill attempt failed: %s", e)
            if len(accepted) < count:
                raise QuestionShortfallError(len(accepted), count)

        logger.info("Quiz questions generated: %s", len(accepted))
        return accepted

    def generate_one(self, text: str, existing_question_texts: Iterable[str]) -> Question:
        """
        Generate one question the model is told not to duplicate. Uniqueness is best effort:
        callers check for duplicates before saving.
        """
        existing = [t.strip() for t in existing_question_texts if t and t.strip()]
        avoid = "\n".join(f"- {t}" for t in existing) or "- (none)"
        prompt = f"""Generate exactly 1 new multiple-choice question based on the following content.

Content:
{self._content(text)}

The new question must not repeat or rephrase any of these existing questions (comparison ignores case and surrounding whitespace):
{avoid}

Requirements:
1. Exactly 4 options
2. The correct answer must be copied verbatim from the options
3. Add a brief explanation for the correct answer

Return your response as a JSON object in this exact format:
{_JSON_SHAPE}"""
        data = _load_json(self._complete(prompt))
        entry = data
        if isinstance(data, dict) and isinstance(data.get("questions"), list):
            if not data["questions"]:
                raise LLMResponseError("LLM returned no question")
            entry = data["questions"][0]
        try:
            question = Question.model_validate(entry)
        except ValidationError as e:
            raise QuestionGenerationError(f"Invalid question format: {e.errors()[0].get('msg', e)}") from e
        if normalize_stem(question.text) in {normalize_stem(t) for t in existing}:
            logger.warning("Regenerated question duplicates an existing one: %r", question.text[:80])
        return question
