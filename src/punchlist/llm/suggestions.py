# src/punchlist/llm/suggestions.py

"""
Task suggestion prompt + response parsing, and the Gemini gateway.

Contract shared by every gateway:
- one request per call, no retry;
- the reply must decode to a non-empty JSON array of strings;
- anything else raises SuggestionError (the caller reports it and leaves the
  task list untouched).
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..errors import SuggestionError

logger = logging.getLogger(__name__)

SUGGESTION_COUNT = 5


def build_prompt(trade: str) -> str:
    return (
        f'Generate a JSON array of {SUGGESTION_COUNT} common tasks (strings) for "{trade}" '
        "in a residential construction project. Do not include any introductory or concluding "
        'remarks, just the JSON array. Example: ["Task 1", "Task 2"]'
    )


def build_gemini_payload(trade: str) -> dict[str, Any]:
    return {
        "contents": [{"role": "user", "parts": [{"text": build_prompt(trade)}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": {"type": "ARRAY", "items": {"type": "STRING"}},
        },
    }


def parse_suggestions(text: Any) -> list[str]:
    """Decode a JSON-encoded array of strings. Raises SuggestionError otherwise."""
    if not isinstance(text, str) or not text.strip():
        raise SuggestionError("Suggestion service returned no text.")
    try:
        value = json.loads(text)
    except ValueError as e:
        raise SuggestionError("Suggestion service did not return valid JSON.") from e

    if not isinstance(value, list) or not value:
        raise SuggestionError("Suggestion service did not return a valid list of tasks.")
    if not all(isinstance(item, str) for item in value):
        raise SuggestionError("Suggestion service did not return a valid list of tasks.")
    return list(value)


def extract_gemini_text(payload: Any) -> str:
    """Pull candidates[0].content.parts[0].text out of a generateContent response."""
    try:
        candidates = payload["candidates"]
        if not candidates:
            raise IndexError("no candidates")
        parts = candidates[0]["content"]["parts"]
        if not parts:
            raise IndexError("no parts")
        text = parts[0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        logger.info("Unexpected suggestion response shape: %r", payload)
        raise SuggestionError("Failed to get task suggestions. Please try again.") from e
    if not isinstance(text, str):
        raise SuggestionError("Failed to get task suggestions. Please try again.")
    return text


class GeminiSuggestionGateway:
    """
    Calls the generateContent endpoint with a JSON-array response schema.

    No timeout unless one is configured; a hung request only blocks the
    caller awaiting it.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-2.0-flash",
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise RuntimeError("Gemini API key is not set. Set PUNCHLIST_GEMINI_API_KEY in your .env.")
        self._api_key = api_key.strip()
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._model = model
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    async def suggest_tasks(self, trade: str) -> list[str]:
        logger.info("Suggestions: requesting model=%s trade=%s", self._model, trade)
        try:
            resp = await self._client.post(
                self._url,
                params={"key": self._api_key},
                headers={"Content-Type": "application/json"},
                json=build_gemini_payload(trade),
            )
        except httpx.HTTPError as e:
            raise SuggestionError(f"Suggestion request failed: {e.__class__.__name__}") from e

        if resp.status_code >= 400:
            logger.info("Suggestions: HTTP %s body=%s", resp.status_code, resp.text[:500])
            raise SuggestionError(f"Suggestion service returned HTTP {resp.status_code}.")

        try:
            payload = resp.json()
        except ValueError as e:
            raise SuggestionError("Suggestion service returned a non-JSON response.") from e

        tasks = parse_suggestions(extract_gemini_text(payload))
        logger.debug("Suggestions: got %d tasks for trade=%s", len(tasks), trade)
        return tasks

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
