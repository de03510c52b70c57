"""
Quiz orchestration: extracted text -> questions (LLM) -> QTI package -> persisted quiz.

Edits only rebuild the package from the submitted questions; the LLM is not called.
Failures from extraction, generation and packaging are wrapped in QuizGenerationError
with the failing stage; persistence errors pass through unchanged.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Sequence

from pydantic import ValidationError
from sqlalchemy.orm import Session

from quizflow.config import settings
from quizflow.errors import InputError, NotFoundError, QuizGenerationError
from quizflow.models.quiz import Quiz
from quizflow.models.user import User
from quizflow.schemas.question import Question
from quizflow.schemas.quiz import MAX_QUESTIONS_PER_QUIZ
from quizflow.services.dedupe import ensure_unique_questions, find_duplicate_questions
from quizflow.services.file_service import QTI_EXPORT, QUIZ_GENERATION, FileService, as_uuid
from quizflow.services.plans import DEFAULT_PLAN_TABLE, PlanTable
from quizflow.services.qti_package import GeneratedPackage, QtiPackageBuilder
from quizflow.services.question_generator import QuestionGenerator
from quizflow.services.text_extraction import extract_text

logger = logging.getLogger(__name__)

STAGE_EXTRACTION = "text extraction"
STAGE_GENERATION = "question generation"
STAGE_PACKAGING = "packaging"


@dataclass
class QuizResult:
    quiz: Quiz
    download_url: str


def coerce_questions(questions: Sequence[Any]) -> list[Question]:
    """Validate a caller-supplied question list (Question objects or dicts); InputError on any bad entry."""
    if not questions:
        raise InputError("A quiz needs at least one question")
    if len(questions) > MAX_QUESTIONS_PER_QUIZ:
        raise InputError(f"A quiz can have at most {MAX_QUESTIONS_PER_QUIZ} questions")
    out = []
    for i, q in enumerate(questions, start=1):
        data = q.model_dump() if isinstance(q, Question) else q
        try:
            out.append(Question.model_validate(data))
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or "question"
            raise InputError(f"Question {i} is invalid ({field}): {first.get('msg')}") from e
    return out


class QuizService:
    def __init__(
        self,
        db: Session,
        builder: QtiPackageBuilder,
        generator: QuestionGenerator | None = None,
        plan_table: PlanTable = DEFAULT_PLAN_TABLE,
        api_url: str | None = None,
        files: FileService | None = None,
    ):
        self.db = db
        self.builder = builder
        self._generator = generator
        self.plan_table = plan_table
        self.api_url = (api_url if api_url is not None else settings.api_url).rstrip("/")
        self.files = files or FileService(db, plan_table=plan_table)

    @property
    def generator(self) -> QuestionGenerator:
        # Built on first use so edit-only requests never need an LLM client
        if self._generator is None:
            from quizflow.llm import get_llm_client
            self._generator = QuestionGenerator(get_llm_client(), max_prompt_chars=settings.max_prompt_chars)
        return self._generator

    def download_url_for(self, quiz_id) -> str:
        return f"{self.api_url}/quizzes/{quiz_id}/download"

    def _get_user(self, user_id) -> User:
        user = self.db.query(User).filter(User.id == as_uuid(user_id, "User")).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def _lecture_text(self, upload) -> str:
        text = (upload.extracted_text or "").strip()
        if text:
            return upload.extracted_text
        # Upload record without text (e.g. extraction failed earlier): try once more from the stored file
        try:
            text = extract_text(upload.file_path, upload.file_type, min_chars=self.files.min_content_chars)
        except Exception as e:
            logger.warning("Re-extraction failed for upload %s: %s", upload.id, e)
            raise QuizGenerationError(STAGE_EXTRACTION, e) from e
        upload.extracted_text = text
        return text

    def _build(self, title: str, questions: list[Question], has_watermark: bool, filename: str) -> GeneratedPackage:
        try:
            return self.builder.build_package(title, questions, has_watermark, filename)
        except Exception as e:
            logger.exception("QTI packaging failed: %s", e)
            raise QuizGenerationError(STAGE_PACKAGING, e) from e

    def generate(self, user_id, file_id, count: int | None = None, title: str | None = None) -> QuizResult:
        user = self._get_user(user_id)
        upload = self.files.get_upload(file_id, user.id)
        limits = self.plan_table.limits_for(user.plan)
        final_count = limits.clamp_question_count(count)
        quiz_title = (title or "").strip() or upload.original_name
        logger.info(
            "Generating quiz: user_id=%s file_id=%s plan=%s requested=%s final=%s",
            user.id, upload.id, user.plan, count, final_count,
        )

        text = self._lecture_text(upload)
        try:
            questions = self.generator.generate_questions(text, final_count, quiz_title)
        except Exception as e:
            logger.exception("Question generation failed: %s", e)
            raise QuizGenerationError(STAGE_GENERATION, e) from e
        duplicates = find_duplicate_questions(questions)
        if duplicates:
            logger.warning("Generated quiz has duplicate questions %s; user must resolve before saving edits", duplicates)

        package = self._build(quiz_title, questions, limits.has_watermark, quiz_title)
        quiz_id = uuid.uuid4()
        download_url = self.download_url_for(quiz_id)
        quiz = Quiz(
            id=quiz_id,
            user_id=user.id,
            file_upload_id=upload.id,
            title=quiz_title,
            questions=[q.model_dump() for q in questions],
            question_count=package.question_count,
            package_file_path=package.file_path,
            download_url=download_url,
            plan=user.plan,
            has_watermark=limits.has_watermark,
        )
        try:
            self.db.add(quiz)
            self.files.record_usage(user, QUIZ_GENERATION, commit=False)
            self.files.record_usage(user, QTI_EXPORT, commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.builder.delete_package(package.file_path)
            raise
        self.db.refresh(quiz)
        logger.info("Quiz generated: quiz_id=%s questions=%s", quiz.id, quiz.question_count)
        return QuizResult(quiz=quiz, download_url=download_url)

    def update_questions(self, quiz_id, user_id, questions: Sequence[Any], filename: str | None = None) -> QuizResult:
        """Rebuild the package from edited questions and update the quiz in place."""
        quiz = self.get_quiz(quiz_id, user_id)
        validated = coerce_questions(questions)
        ensure_unique_questions(validated)
        user = self._get_user(user_id)
        limits = self.plan_table.limits_for(user.plan)

        # Old archive goes first; a failed delete is logged and does not stop the rebuild
        self.builder.delete_package(quiz.package_file_path)
        package = self._build(quiz.title, validated, limits.has_watermark, filename or quiz.title)
        download_url = self.download_url_for(quiz.id)

        quiz.questions = [q.model_dump() for q in validated]
        quiz.question_count = package.question_count
        quiz.package_file_path = package.file_path
        quiz.download_url = download_url
        quiz.plan = user.plan
        quiz.has_watermark = limits.has_watermark
        try:
            self.files.record_usage(user, QTI_EXPORT, commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.builder.delete_package(package.file_path)
            raise
        self.db.refresh(quiz)
        logger.info("Quiz updated: quiz_id=%s questions=%s", quiz.id, quiz.question_count)
        return QuizResult(quiz=quiz, download_url=download_url)

    def replace_one_question(self, file_id, user_id, existing_questions: Sequence[Any]) -> Question:
        """One fresh question for the caller to splice in; nothing is persisted or packaged."""
        upload = self.files.get_upload(file_id, user_id)
        text = self._lecture_text(upload)
        existing_texts = []
        for q in existing_questions or ():
            if isinstance(q, str):
                existing_texts.append(q)
            elif isinstance(q, dict):
                existing_texts.append(str(q.get("text") or q.get("question") or ""))
            else:
                existing_texts.append(str(getattr(q, "text", q) or ""))
        try:
            return self.generator.generate_one(text, existing_texts)
        except Exception as e:
            logger.exception("Single question regeneration failed: %s", e)
            raise QuizGenerationError(STAGE_GENERATION, e) from e

    def list_quizzes(self, user_id) -> list[Quiz]:
        return (
            self.db.query(Quiz)
            .filter(Quiz.user_id == as_uuid(user_id, "User"))
            .order_by(Quiz.created_at.desc())
            .all()
        )

    def get_quiz(self, quiz_id, user_id) -> Quiz:
        quiz = (
            self.db.query(Quiz)
            .filter(Quiz.id == as_uuid(quiz_id, "Quiz"), Quiz.user_id == as_uuid(user_id, "User"))
            .first()
        )
        if not quiz:
            raise NotFoundError("Quiz not found")
        return quiz

    def delete_quiz(self, quiz_id, user_id) -> None:
        quiz = self.get_quiz(quiz_id, user_id)
        self.builder.delete_package(quiz.package_file_path)
        self.db.delete(quiz)
        self.db.commit()
        logger.info("Quiz deleted: quiz_id=%s", quiz_id)
