"""
Quizzes API: generate a quiz from an upload, list/get/delete, edit questions (rebuilds the QTI
package without calling the LLM), regenerate a single question, download the ZIP.
"""
import logging
from pathlib import PurePosixPath

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from quizflow.api.deps import get_current_user, get_quiz_service, to_http_exception
from quizflow.errors import QuizFlowError, UnknownPlanError
from quizflow.models.quiz import Quiz
from quizflow.models.user import User
from quizflow.schemas.question import Question
from quizflow.schemas.quiz import (
    QuizGenerateRequest,
    QuizListResponse,
    QuizQuestionsUpdateRequest,
    QuizResponse,
    QuizResultResponse,
    ReplaceQuestionRequest,
)
from quizflow.services.quiz_service import QuizResult, QuizService

router = APIRouter(prefix="/quizzes", tags=["quizzes"])
logger = logging.getLogger(__name__)


def _quiz_to_response(q: Quiz) -> QuizResponse:
    return QuizResponse(
        id=str(q.id),
        user_id=str(q.user_id),
        file_upload_id=str(q.file_upload_id) if q.file_upload_id else None,
        title=q.title,
        questions=[Question.model_validate(item) for item in (q.questions or [])],
        question_count=q.question_count,
        download_url=q.download_url,
        plan=q.plan,
        has_watermark=q.has_watermark,
        created_at=q.created_at,
        updated_at=q.updated_at,
    )


def _result_to_response(result: QuizResult) -> QuizResultResponse:
    return QuizResultResponse(quiz=_quiz_to_response(result.quiz), download_url=result.download_url)


@router.post("", response_model=QuizResultResponse, status_code=status.HTTP_201_CREATED)
def generate_quiz(
    body: QuizGenerateRequest,
    current_user: User = Depends(get_current_user),
    quizzes: QuizService = Depends(get_quiz_service),
):
    """Generate questions from an uploaded file and package them. Question count is capped by the plan."""
    try:
        result = quizzes.generate(current_user.id, body.file_id, count=body.question_count, title=body.title)
    except (QuizFlowError, UnknownPlanError) as e:
        logger.warning("Quiz generation failed for user %s: %s", current_user.id, e)
        raise to_http_exception(e)
    return _result_to_response(result)


@router.get("", response_model=QuizListResponse)
def list_quizzes(
    current_user: User = Depends(get_current_user),
    quizzes: QuizService = Depends(get_quiz_service),
):
    items = quizzes.list_quizzes(current_user.id)
    return QuizListResponse(items=[_quiz_to_response(q) for q in items], total=len(items))


@router.post("/replace-question", response_model=Question)
def replace_question(
    body: ReplaceQuestionRequest,
    current_user: User = Depends(get_current_user),
    quizzes: QuizService = Depends(get_quiz_service),
):
    """Return one new question that avoids the given ones. Nothing is saved."""
    try:
        return quizzes.replace_one_question(body.file_id, current_user.id, body.existing_questions)
    except QuizFlowError as e:
        raise to_http_exception(e)


@router.get("/{quiz_id}", response_model=QuizResponse)
def get_quiz(
    quiz_id: str,
    current_user: User = Depends(get_current_user),
    quizzes: QuizService = Depends(get_quiz_service),
):
    try:
        return _quiz_to_response(quizzes.get_quiz(quiz_id, current_user.id))
    except QuizFlowError as e:
        raise to_http_exception(e)


@router.put("/{quiz_id}/questions", response_model=QuizResultResponse)
def update_questions(
    quiz_id: str,
    body: QuizQuestionsUpdateRequest,
    current_user: User = Depends(get_current_user),
    quizzes: QuizService = Depends(get_quiz_service),
):
    """Save edited questions and rebuild the package. 400 on duplicates or invalid questions."""
    try:
        result = quizzes.update_questions(quiz_id, current_user.id, body.questions, filename=body.filename)
    except (QuizFlowError, UnknownPlanError) as e:
        raise to_http_exception(e)
    return _result_to_response(result)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quiz(
    quiz_id: str,
    current_user: User = Depends(get_current_user),
    quizzes: QuizService = Depends(get_quiz_service),
):
    try:
        quizzes.delete_quiz(quiz_id, current_user.id)
    except QuizFlowError as e:
        raise to_http_exception(e)


@router.get("/{quiz_id}/download")
def download_quiz(
    quiz_id: str,
    current_user: User = Depends(get_current_user),
    quizzes: QuizService = Depends(get_quiz_service),
):
    """Stream the quiz's QTI ZIP."""
    try:
        quiz = quizzes.get_quiz(quiz_id, current_user.id)
    except QuizFlowError as e:
        raise to_http_exception(e)
    try:
        path = quizzes.builder.resolve_package_path(quiz.package_file_path)
    except ValueError:
        path = None
    if path is None or not path.is_file():
        logger.warning("Package missing for quiz %s: %s", quiz.id, quiz.package_file_path)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz package not found")
    return FileResponse(
        path,
        media_type="application/zip",
        filename=PurePosixPath(quiz.package_file_path).name,
    )
