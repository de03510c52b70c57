"""
Error taxonomy for the quiz pipeline.

Services raise these; routers translate them to HTTP responses. Only InputError
messages are meant for end users, everything else gets a generic message.
"""


class QuizFlowError(Exception):
    """Base for all domain errors."""


class InputError(QuizFlowError):
    """Bad file content, bad question shape, or a count out of range. Not retried (4xx)."""


class ContentTooShortError(InputError):
    pass


class UnsupportedFileTypeError(InputError):
    pass


class DuplicateQuestionsError(InputError):
    def __init__(self, duplicates: list[tuple[int, int]]):
        self.duplicates = duplicates
        pairs = ", ".join(f"{a + 1} and {b + 1}" for a, b in duplicates)
        super().__init__(f"Duplicate questions must be resolved before saving (questions {pairs})")


class QuotaExceededError(InputError):
    pass


class NotFoundError(QuizFlowError):
    pass


class UpstreamSaturatedError(QuizFlowError):
    """LLM rate limit (HTTP 429). The caller may retry the whole request later."""


class UpstreamMisconfiguredError(QuizFlowError):
    """LLM auth/setup failure (HTTP 401, missing key). Operator-actionable, never retried."""


class QuestionGenerationError(QuizFlowError):
    """Generic LLM failure."""


class LLMResponseError(QuestionGenerationError):
    """The model response could not be parsed into the expected envelope."""


class QuestionShortfallError(QuestionGenerationError):
    def __init__(self, achieved: int, requested: int):
        self.achieved = achieved
        self.requested = requested
        super().__init__(f"Generated {achieved} of {requested} questions")


class PackagingError(QuizFlowError):
    """Empty question list, failed shape check, or filesystem write failure. Fatal for the request."""


class QuizGenerationError(QuizFlowError):
    """Wraps a failure from extraction, generation or packaging with the stage that failed."""

    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Quiz generation failed during {stage}: {cause}")


class UnknownPlanError(LookupError):
    """Plan name outside the configured table. A programming error, not a user condition."""
