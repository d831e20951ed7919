# /quizflow/services/llm_service.py

"""
The LLM judge used for AI grading.

Grading code never talks to Gemini directly: it receives a judge object with
a single coroutine, `complete_json(system_prompt, user_prompt) -> str`, that
returns the raw text of one completion in strict-JSON mode. `GeminiJudge` is
the production implementation; tests inject a deterministic double.
"""

import logging
from typing import Optional, Protocol

import google.generativeai as genai
from google.generativeai.types import GenerationConfig

from ..core.config import GOOGLE_API_KEY, GEMINI_GRADING_MODEL, AI_GRADING_TEMPERATURE

logger = logging.getLogger(__name__)


class JudgeClient(Protocol):
    async def complete_json(self, system_prompt: str, user_prompt: str) -> str: ...


class GeminiJudge:
    """Gemini-backed judge using the API's JSON mode."""

    def __init__(self, api_key: Optional[str] = None, model_name: str = GEMINI_GRADING_MODEL,
                 temperature: float = AI_GRADING_TEMPERATURE, max_output_tokens: int = 500):
        api_key = api_key or GOOGLE_API_KEY
        if not api_key:
            raise ValueError("GOOGLE_API_KEY environment variable is not set.")
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    async def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        """
        Sends one system+user prompt pair and returns the raw completion text.
        An empty completion raises ValueError; the caller decides how to recover.
        """
        model = genai.GenerativeModel(self.model_name, system_instruction=system_prompt)
        config = GenerationConfig(
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            response_mime_type="application/json",
        )
        response = await model.generate_content_async(user_prompt, generation_config=config)
        if not response.parts:
            raise ValueError("AI model returned an empty response.")
        return response.text


_default_judge: Optional[GeminiJudge] = None


def get_judge() -> JudgeClient:
    """FastAPI dependency provider for the judge. Built on first use, not at import."""
    global _default_judge
    if _default_judge is None:
        _default_judge = GeminiJudge()
        logger.info("Initialised Gemini judge with model %s", _default_judge.model_name)
    return _default_judge
