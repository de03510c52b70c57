"""
LLM client interface and provider error classification.

Clients are a black box: a system prompt and a user prompt go in, raw JSON text
comes out. Provider HTTP status codes are the only structured failure signal.
"""
from typing import Protocol

from quizflow.errors import (
    QuestionGenerationError,
    QuizFlowError,
    UpstreamMisconfiguredError,
    UpstreamSaturatedError,
)


class LLMClient(Protocol):
    """Text-in/JSON-out completion."""

    model_name: str

    def complete_json(self, system: str, prompt: str) -> str:
        """Return the raw model output, expected to be one JSON object."""
        ...


def status_code_of(exc: BaseException) -> int | None:
    """HTTP status from an SDK exception (openai .status_code, google-genai .code, httpx .response)."""
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_rate_limited(exc: BaseException) -> bool:
    if status_code_of(exc) == 429:
        return True
    msg = str(exc).lower()
    return "rate limit" in msg or "rate_limit" in msg or "resource exhausted" in msg


def is_auth_failure(exc: BaseException) -> bool:
    return status_code_of(exc) in (401, 403)


def is_retryable(exc: BaseException) -> bool:
    """Retry on 429 (rate limit) and 5xx."""
    if isinstance(exc, QuizFlowError):
        return False
    if is_rate_limited(exc):
        return True
    code = status_code_of(exc)
    if code is not None:
        return code >= 500
    msg = str(exc).lower()
    return "502" in msg or "503" in msg or "overloaded" in msg


def classify_llm_error(exc: BaseException) -> QuizFlowError:
    """Map a provider failure to UpstreamSaturated (429), UpstreamMisconfigured (401/403) or a generic error."""
    if isinstance(exc, QuizFlowError):
        return exc
    if is_rate_limited(exc):
        return UpstreamSaturatedError("LLM rate limit reached. Please try again later.")
    if is_auth_failure(exc):
        return UpstreamMisconfiguredError("LLM API authentication failed")
    return QuestionGenerationError(f"LLM request failed: {exc}")
