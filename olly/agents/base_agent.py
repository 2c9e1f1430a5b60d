"""Shared Gemini API call wrapper with JSON parsing and retry logic."""
import asyncio
import json
import logging
import re
import time

import google.generativeai as genai
import google.api_core.exceptions

from olly.config import settings
from olly.errors import LanguageModelError, LanguageModelOverloaded

logger = logging.getLogger(__name__)

# Hotel questions are not harmful content
_SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]

_OVERLOAD_ERRORS = (
    google.api_core.exceptions.ResourceExhausted,
    google.api_core.exceptions.TooManyRequests,
    google.api_core.exceptions.ServiceUnavailable,
)


class GeminiClient:
    """
    Stateless text-completion client.

    generate_text() returns free-form text, generate_json() returns a dict
    parsed from a JSON-only response. Overload conditions raise
    LanguageModelOverloaded immediately (the caller answers "please wait");
    other API errors are retried and then raised as LanguageModelError.
    """

    def __init__(
        self,
        api_key: str = None,
        model_name: str = None,
        max_tokens: int = None,
        temperature: float = None,
        retries: int = 2,
    ):
        genai.configure(api_key=api_key or settings.GEMINI_API_KEY)
        self.model_name = model_name or settings.GEMINI_MODEL
        self.max_tokens = max_tokens or settings.GEMINI_MAX_TOKENS
        self.temperature = settings.GEMINI_TEMPERATURE if temperature is None else temperature
        self.retries = retries

    async def generate_text(self, system_prompt: str, user_message: str, max_tokens: int = None) -> str:
        raw = await asyncio.to_thread(
            self._call, system_prompt, user_message, max_tokens or self.max_tokens, False
        )
        return raw.strip()

    async def generate_json(self, system_prompt: str, user_message: str, max_tokens: int = None) -> dict:
        """
        JSON-mode call. Returns an empty dict when the model keeps producing
        unparseable output so the caller can treat it as "no answer".
        """
        for attempt in range(self.retries):
            raw = await asyncio.to_thread(
                self._call, system_prompt, user_message, max_tokens or self.max_tokens, True
            )
            try:
                parsed = _parse_json(raw)
            except json.JSONDecodeError as e:
                logger.warning(f"JSON parse error on attempt {attempt + 1}: {e}")
                continue
            return parsed if isinstance(parsed, dict) else {}
        logger.error("JSON parse failed on all attempts, returning empty dict")
        return {}

    def _call(self, system_prompt: str, user_message: str, max_tokens: int, json_mode: bool) -> str:
        attempt = 0
        while True:
            try:
                config = genai.types.GenerationConfig(
                    temperature=self.temperature,
                    max_output_tokens=max_tokens,
                    response_mime_type="application/json" if json_mode else "text/plain",
                )
                model = genai.GenerativeModel(
                    model_name=self.model_name,
                    system_instruction=system_prompt,
                    generation_config=config,
                    safety_settings=_SAFETY_SETTINGS,
                )
                response = model.generate_content(user_message)

                candidate = response.candidates[0] if response.candidates else None
                if candidate and candidate.content and candidate.content.parts:
                    return "".join(part.text for part in candidate.content.parts)
                return ""

            except _OVERLOAD_ERRORS as e:
                logger.warning(f"Gemini overloaded: {e}")
                raise LanguageModelOverloaded(str(e)) from e

            except google.api_core.exceptions.GoogleAPICallError as e:
                logger.error(f"Gemini API error on attempt {attempt + 1}: {e}")
                attempt += 1
                if attempt >= self.retries:
                    raise LanguageModelError(str(e)) from e
                time.sleep(1)

            except Exception as e:
                # Blocked candidates raise ValueError from part.text; credential
                # problems surface from google.auth. Neither is worth a retry.
                logger.error(f"Gemini call failed: {type(e).__name__}: {e}")
                raise LanguageModelError(str(e)) from e


def _parse_json(raw: str):
    """Strip markdown code fences, sanitize bad escapes, and parse JSON."""
    cleaned = re.sub(r"^```(?:json)?\s*", "", raw.strip(), flags=re.MULTILINE)
    cleaned = re.sub(r"\s*```$", "", cleaned, flags=re.MULTILINE)
    cleaned = cleaned.strip()

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        # Replace any backslash not followed by a valid JSON escape char with \\
        sanitized = re.sub(r'\\(?!["\\/bfnrtu])', r'\\\\', cleaned)
        return json.loads(sanitized)
