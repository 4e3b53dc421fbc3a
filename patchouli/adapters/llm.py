"""
LLM adapters for the Query Translator and Clue Generator.

Both talk to an OpenAI-compatible ``/chat/completions`` endpoint. Every
failure is raised as AssistUnavailableError or AssistTimeoutError; callers
decide how to degrade.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from patchouli.domain.errors import AssistTimeoutError, AssistUnavailableError

logger = logging.getLogger(__name__)

TRANSLATOR_PROMPT = (
    "You are a search intent analyst for a Minecraft Bedrock development knowledge base. "
    "The user writes a natural-language query; convert it into a search string.\n"
    "Rules:\n"
    "1. Extract the core keywords.\n"
    "2. Join alternative synonyms with \" OR \".\n"
    "3. Separate terms that must all match with a single space.\n"
    "4. Return everything on one line.\n"
    "5. Return only the search string, no explanation.\n"
    "Example: \"I need a script that backs up my world automatically\" -> "
    "\"backup OR save world OR level auto OR automatic\""
)

CLUE_PROMPT = (
    "You are a knowledge base assistant. From the content the user provides, write a "
    "short line of search clues: core feature keywords, use cases, problems solved and "
    "synonyms. Plain text only, no Markdown, no line breaks, at most 100 characters."
)


class ChatCompletionsClient:
    """Minimal synchronous client for an OpenAI-compatible chat API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout_seconds: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._model = model
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def complete(self, system_prompt: str, user_content: str) -> str:
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
        }
        try:
            response = self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise AssistTimeoutError(f"LLM request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise AssistUnavailableError(
                f"LLM returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise AssistUnavailableError(f"LLM request failed: {e}") from e

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AssistUnavailableError("LLM response had an unexpected shape") from e

        if not isinstance(content, str) or not content.strip():
            raise AssistUnavailableError("LLM returned an empty answer")
        return content.strip()


class LLMQueryTranslator:
    """TranslatorPort backed by a chat model."""

    def __init__(self, client: ChatCompletionsClient) -> None:
        self._client = client

    def translate(self, phrase: str) -> str:
        answer = self._client.complete(TRANSLATOR_PROMPT, phrase)
        # Models sometimes answer on several lines; only the first is the query.
        return answer.splitlines()[0].strip()


class LLMClueGenerator:
    """ClueGeneratorPort backed by a chat model."""

    def __init__(self, client: ChatCompletionsClient) -> None:
        self._client = client

    def generate(self, body: str) -> str:
        return self._client.complete(CLUE_PROMPT, body)


class OfflineAssistant:
    """
    Stand-in for both collaborators when no LLM is configured.
    Always unavailable, so search falls back to keywords and clues stay unset.
    """

    def translate(self, phrase: str) -> str:
        logger.debug("Offline assistant asked to translate a phrase")
        raise AssistUnavailableError("No LLM configured")

    def generate(self, body: str) -> str:
        logger.debug("Offline assistant asked to generate clues")
        raise AssistUnavailableError("No LLM configured")
