"""
Question schema shared by the LLM boundary, the package builder and the API.
Accepts the model's camelCase keys (question, correctAnswer) as well as snake_case.
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

OPTIONS_PER_QUESTION = 4


class Question(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    text: str = Field(validation_alias=AliasChoices("text", "question"))
    options: list[str]
    correct_answer: str = Field(validation_alias=AliasChoices("correct_answer", "correctAnswer", "answer"))
    explanation: str | None = None

    @field_validator("text", "correct_answer")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("options")
    @classmethod
    def four_unique_options(cls, v: list[str]) -> list[str]:
        if len(v) != OPTIONS_PER_QUESTION:
            raise ValueError(f"must have exactly {OPTIONS_PER_QUESTION} options")
        cleaned = [str(o).strip() for o in v]
        if any(not o for o in cleaned):
            raise ValueError("options must not be empty")
        if len({o.lower() for o in cleaned}) != len(cleaned):
            raise ValueError("options must be unique")
        return cleaned

    @field_validator("explanation", mode="before")
    @classmethod
    def blank_explanation_is_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @model_validator(mode="after")
    def correct_answer_is_an_option(self) -> "Question":
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must match one of the options verbatim")
        return self
