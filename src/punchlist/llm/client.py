# src/punchlist/llm/client.py

from __future__ import annotations

import logging
import re
from typing import Any, Dict

import httpx
import openai
from openai import AsyncOpenAI

from ..errors import SuggestionError
from .suggestions import build_prompt, parse_suggestions

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.APIConnectionError, openai.APITimeoutError))


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def _strip_code_fence(text: str) -> str:
    # Chat models often wrap JSON in ```json ... ``` even when told not to.
    m = _CODE_FENCE.match(text.strip())
    return m.group(1) if m else text


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "Suggestion service error."
    if "API key is not set" in msg:
        return "Task suggestions are not configured (missing API key). See config.example.py."
    if "base URL is not set" in msg:
        return "Task suggestions are not configured (missing base URL). See config.example.py."
    return msg


class OpenRouterSuggestionGateway:
    """
    OpenAI-compatible chat completion (OpenRouter by default).

    One request, one model, automatic SDK retries disabled.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        model: str,
        extra_headers: Dict[str, str] | None = None,
        timeout: float | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if not api_key or not str(api_key).strip():
            raise RuntimeError("LLM API key is not set. Set PUNCHLIST_OPENROUTER_API_KEY in your .env.")
        if not base_url or not base_url.strip():
            raise RuntimeError("LLM base URL is not set. Set PUNCHLIST_OPENROUTER_BASE_URL in your .env.")

        self._model = model
        self._headers = dict(extra_headers or {})
        self._client = client or AsyncOpenAI(
            base_url=str(base_url),
            api_key=str(api_key),
            timeout=httpx.Timeout(timeout),
            max_retries=0,
        )

    async def suggest_tasks(self, trade: str) -> list[str]:
        logger.info("Suggestions: requesting model=%s trade=%s", self._model, trade)
        try:
            resp = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": build_prompt(trade)}],
                extra_headers=self._headers or None,
            )
        except Exception as e:
            raise SuggestionError(self._describe(e)) from e

        content: Any = None
        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None

        if not isinstance(content, str):
            logger.info("Suggestions: unexpected completion shape model=%s", self._model)
            raise SuggestionError("Failed to get task suggestions. Please try again.")

        return parse_suggestions(_strip_code_fence(content))

    def _describe(self, e: Exception) -> str:
        if _is_auth_error(e):
            return "LLM authentication failed. Check your API key (PUNCHLIST_OPENROUTER_API_KEY)."
        if _is_not_found_error(e):
            return f"LLM model not available: {self._model}"
        if _is_rate_limit_error(e):
            return "LLM is rate-limited. Try again later."
        if _is_connection_error(e):
            return "LLM network/timeout error. Try again later."
        logger.info("Suggestions: error on model=%s (%s)", self._model, e.__class__.__name__)
        return f"Error suggesting tasks: {e.__class__.__name__}"

    async def aclose(self) -> None:
        await self._client.close()
