import logging
import re
from enum import Enum
from typing import Optional

import httpx

from collabquest.config import get_settings

logger = logging.getLogger(__name__)

# Swapped out in tests for an httpx.MockTransport
transport: Optional[httpx.AsyncBaseTransport] = None


class ErrorCode(str, Enum):
    api_key_missing = "API_KEY_MISSING"
    invalid_api_key = "INVALID_API_KEY"
    network_error = "NETWORK_ERROR"
    rate_limit = "RATE_LIMIT"
    empty_response = "EMPTY_RESPONSE"
    unknown_error = "UNKNOWN_ERROR"


FRIENDLY_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.network_error: "Network connection unstable. Please check your internet and try again.",
    ErrorCode.rate_limit: "The synergy engine is currently busy. Please wait a moment before retrying.",
    ErrorCode.api_key_missing: "Merit connection lost. Please re-authenticate or check your AI settings.",
    ErrorCode.invalid_api_key: "Merit connection lost. Please re-authenticate or check your AI settings.",
    ErrorCode.empty_response: "The AI couldn't generate a summary this time. Let's try scanning again.",
    ErrorCode.unknown_error: "An unexpected error occurred while analyzing your merit profile.",
}


def friendly_message(code: ErrorCode) -> str:
    return FRIENDLY_MESSAGES.get(code, FRIENDLY_MESSAGES[ErrorCode.unknown_error])


class AIServiceError(Exception):
    """A failed call to the generative-AI service, classified by cause."""

    def __init__(self, code: ErrorCode, detail: str = ""):
        self.code = code
        self.detail = detail
        super().__init__(f"{code.value}: {detail}" if detail else code.value)

    @property
    def message(self) -> str:
        return friendly_message(self.code)


def strip_fences(content: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    content = re.sub(r"^```(?:json)?\s*", "", content.strip())
    content = re.sub(r"\s*```$", "", content.strip())
    return content.strip()


def _classify_status(status: int, body: str) -> ErrorCode:
    lowered = body.lower()
    if status in (401, 403) or "api key not valid" in lowered:
        return ErrorCode.invalid_api_key
    if status == 429 or "quota" in lowered:
        return ErrorCode.rate_limit
    return ErrorCode.unknown_error


def has_api_key() -> bool:
    return bool(get_settings().openrouter_api_key)


async def complete(prompt: str, *, json_mode: bool = False, temperature: float = 0.7) -> str:
    """Send one user prompt to the chat-completions endpoint and return the reply text.

    Raises AIServiceError for every failure, including a blank reply.
    """
    settings = get_settings()
    if not settings.openrouter_api_key:
        raise AIServiceError(ErrorCode.api_key_missing)

    payload: dict = {
        "model": settings.llm_model,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": temperature,
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}

    try:
        async with httpx.AsyncClient(timeout=settings.llm_timeout, transport=transport) as client:
            resp = await client.post(
                settings.openrouter_url,
                headers={
                    "Authorization": f"Bearer {settings.openrouter_api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
    except httpx.TransportError as e:
        logger.warning("LLM request failed: %s", e)
        raise AIServiceError(ErrorCode.network_error, str(e)) from e

    if resp.status_code >= 400:
        code = _classify_status(resp.status_code, resp.text)
        logger.warning("LLM returned HTTP %d (%s)", resp.status_code, code.value)
        raise AIServiceError(code, f"HTTP {resp.status_code}")

    try:
        body = resp.json()
    except ValueError as e:
        raise AIServiceError(ErrorCode.unknown_error, "response was not JSON") from e

    # OpenRouter reports some upstream failures in a 200 body
    if isinstance(body, dict) and body.get("error"):
        err = body["error"]
        status = err.get("code") if isinstance(err, dict) else None
        text = str(err.get("message", "")) if isinstance(err, dict) else str(err)
        code = _classify_status(status if isinstance(status, int) else 0, text)
        logger.warning("LLM reported an error (%s): %s", code.value, text)
        raise AIServiceError(code, text)

    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None

    if not content or not content.strip():
        raise AIServiceError(ErrorCode.empty_response)
    return content
