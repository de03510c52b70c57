"""
OpenAI implementation of LLMClient: chat completions with JSON response format.
"""
import logging

from openai import OpenAI

from quizflow.config import settings
from quizflow.errors import LLMResponseError

logger = logging.getLogger(__name__)


class OpenAIClient:
    def __init__(self, api_key: str | None = None, model: str | None = None):
        self.client = OpenAI(api_key=api_key or settings.openai_api_key, timeout=settings.llm_timeout_seconds)
        self.model_name = model or settings.openai_model

    def complete_json(self, system: str, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model_name,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMResponseError("No response from OpenAI")
        usage = response.usage
        logger.info("OpenAI completion: model=%s total_tokens=%s", self.model_name, usage.total_tokens if usage else None)
        return content
