"""
Gemini access shared by the moderation and summarization gateways.

One client is cached per process. Transient provider errors (timeouts,
rate limits, 5xx) are retried with exponential backoff; everything else
goes straight to the caller.
"""

import json
import logging
import re
from functools import lru_cache
from typing import Any, Awaitable, Callable, Optional

from google import genai
from google.genai import errors, types
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from config import GEMINI_MODEL, GEMINI_TEMPERATURE, GOOGLE_API_KEY, LLM_MAX_RETRIES

logger = logging.getLogger(__name__)

LLMCall = Callable[..., Awaitable[Optional[str]]]

_CODE_FENCE_START = re.compile(r"^```(?:json)?\s*")
_CODE_FENCE_END = re.compile(r"\s*```$")


class LLMConfigurationError(RuntimeError):
    """Raised when no Gemini API key is configured."""


@lru_cache(maxsize=1)
def get_gemini_client() -> genai.Client:
    if not GOOGLE_API_KEY:
        raise LLMConfigurationError("GOOGLE_API_KEY is not set")
    logger.info("Initialized Gemini client for model %s", GEMINI_MODEL)
    return genai.Client(api_key=GOOGLE_API_KEY)


def is_transient_error(exc: BaseException) -> bool:
    if isinstance(exc, errors.ServerError):
        return True
    if isinstance(exc, errors.ClientError):
        return exc.code == 429
    return isinstance(exc, TimeoutError)


@retry(
    stop=stop_after_attempt(LLM_MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(is_transient_error),
    reraise=True,
)
async def call_llm(
    prompt: str,
    *,
    system_instruction: Optional[str] = None,
    safety_settings: Optional[list[dict[str, str]]] = None,
) -> Optional[str]:
    """Send a prompt and return the JSON text the model produced.

    Returns None when the response carries no text, e.g. when every
    candidate was blocked.
    """
    client = get_gemini_client()
    config = types.GenerateContentConfig(
        system_instruction=system_instruction,
        temperature=GEMINI_TEMPERATURE,
        response_mime_type="application/json",
        safety_settings=safety_settings,
    )
    try:
        response = await client.aio.models.generate_content(
            model=GEMINI_MODEL, contents=prompt, config=config
        )
    except Exception as e:
        if is_transient_error(e):
            logger.warning("Transient LLM error, may retry: %s", e)
        raise
    if not response.text:
        logger.warning("LLM response contained no text: %s", response.prompt_feedback)
        return None
    return response.text


def parse_json_response(text: str) -> dict[str, Any]:
    """Decode a model's JSON object, tolerating a markdown code fence."""
    json_text = _CODE_FENCE_END.sub("", _CODE_FENCE_START.sub("", text.strip()))
    data = json.loads(json_text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data
