"""
LLM clients: OpenAI (default), Gemini, and a mock for local runs without a key.
get_llm_client() wraps the selected client in tenacity retries.
"""
import logging

from quizflow.config import settings
from quizflow.errors import UpstreamMisconfiguredError
from quizflow.llm.base import LLMClient, classify_llm_error
from quizflow.llm.llm_service import RetryingLLMClient

logger = logging.getLogger(__name__)


def api_key_for(provider: str) -> str:
    if provider == "gemini":
        return (settings.gemini_api_key or "").strip()
    return (settings.openai_api_key or "").strip()


def get_llm_client() -> LLMClient:
    """Return the configured client; mock only when the key is missing outside production."""
    provider = settings.llm_provider
    if provider not in ("openai", "gemini"):
        raise UpstreamMisconfiguredError(f"Unsupported LLM_PROVIDER: {provider}")
    key = api_key_for(provider)
    if not key:
        if settings.is_production:
            raise UpstreamMisconfiguredError(f"No API key configured for LLM provider {provider}")
        logger.warning("%s API key not set; using mock LLM.", provider.upper())
        from quizflow.llm.mock_impl import MockLLMClient
        return MockLLMClient()
    if provider == "gemini":
        from quizflow.llm.gemini_impl import GeminiClient
        inner = GeminiClient(api_key=key)
    else:
        from quizflow.llm.openai_impl import OpenAIClient
        inner = OpenAIClient(api_key=key)
    logger.info("Using LLM: %s (%s)", inner.model_name, provider)
    return RetryingLLMClient(inner, max_attempts=settings.llm_max_attempts)


__all__ = ["LLMClient", "api_key_for", "classify_llm_error", "get_llm_client"]
