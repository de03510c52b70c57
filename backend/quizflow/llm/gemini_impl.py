"""
Gemini (Google) implementation of LLMClient via google.genai (generate_content).
Uses GEMINI_MODEL and GEMINI_API_KEY; JSON output via response_mime_type.
"""
import logging
import time

from google import genai
from google.genai import types

from quizflow.config import settings
from quizflow.errors import LLMResponseError

logger = logging.getLogger(__name__)


class GeminiClient:
    def __init__(self, api_key: str | None = None, model: str | None = None):
        self._client = genai.Client(api_key=api_key or settings.gemini_api_key)
        self.model_name = (model or settings.gemini_model or "gemini-2.5-flash").strip()

    def complete_json(self, system: str, prompt: str) -> str:
        config = types.GenerateContentConfig(
            system_instruction=system,
            max_output_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            response_mime_type="application/json",
        )
        t0 = time.perf_counter()
        response = self._client.models.generate_content(
            model=self.model_name,
            contents=prompt,
            config=config,
        )
        raw = (getattr(response, "text", None) or "").strip()
        logger.info("Gemini completion: model=%s %.2fs len=%s", self.model_name, time.perf_counter() - t0, len(raw))
        if not raw:
            raise LLMResponseError("No response from Gemini")
        return raw
