"""
Retry wrapper for any LLMClient: tenacity retries on 429 and 5xx with exponential backoff.
Auth failures and parse errors are not retried.
"""
import logging

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from quizflow.llm.base import LLMClient, is_retryable

logger = logging.getLogger(__name__)


class RetryingLLMClient:
    def __init__(self, inner: LLMClient, max_attempts: int = 3, wait_min: float = 2, wait_max: float = 30):
        self.inner = inner
        self.model_name = getattr(inner, "model_name", "unknown")
        self._max_attempts = max(1, max_attempts)
        self._wait_min = wait_min
        self._wait_max = wait_max

    def complete_json(self, system: str, prompt: str) -> str:
        retrying = Retrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=1, min=self._wait_min, max=self._wait_max),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self.inner.complete_json, system, prompt)
