"""
Quiz request/response schemas.
"""
from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from quizflow.schemas.question import Question

# Hard ceiling on questions per quiz regardless of plan
MAX_QUESTIONS_PER_QUIZ = 30


class QuizGenerateRequest(BaseModel):
    file_id: str = Field(min_length=1)
    question_count: int | None = Field(default=None, ge=1, le=MAX_QUESTIONS_PER_QUIZ)
    title: str | None = Field(default=None, min_length=1, max_length=200)


class QuizQuestionsUpdateRequest(BaseModel):
    questions: list[Question] = Field(min_length=1, max_length=MAX_QUESTIONS_PER_QUIZ)
    filename: str | None = Field(default=None, max_length=200)


class QuestionDraft(BaseModel):
    """Only the text of a question already on the page; its other fields may be mid-edit."""
    model_config = ConfigDict(extra="ignore")

    text: str = Field(default="", validation_alias=AliasChoices("text", "question"))


class ReplaceQuestionRequest(BaseModel):
    file_id: str = Field(min_length=1)
    existing_questions: list[str | QuestionDraft] = Field(default_factory=list, max_length=MAX_QUESTIONS_PER_QUIZ)


class QuizResponse(BaseModel):
    id: str
    user_id: str
    file_upload_id: str | None
    title: str
    questions: list[Question]
    question_count: int
    download_url: str
    plan: str
    has_watermark: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class QuizResultResponse(BaseModel):
    quiz: QuizResponse
    download_url: str


class QuizListResponse(BaseModel):
    items: list[QuizResponse]
    total: int
