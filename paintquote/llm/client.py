"""Ollama LLM client used to phrase assistant replies.

Uses Ollama's native /api/chat endpoint (not OpenAI-compat) so thinking
mode can be disabled via think=false. The model only rewords prompts the
intake machine already produced; it never decides what to ask next.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Any

import httpx

from paintquote.config import settings

logger = logging.getLogger(__name__)


class OllamaClient:
    """Async client for Ollama's native /api/chat endpoint."""

    def __init__(self, base_url: str | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._base_url = base_url or settings.llm.ollama_base_url
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(float(settings.llm.conversation_timeout), connect=5.0),
            transport=transport,
        )

    async def chat(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Send a chat request to Ollama's native API (non-streaming, no thinking).

        Args:
            system_prompt: System-level instructions for the LLM.
            messages: List of {"role": "user"|"assistant", "content": "..."}.
            model: Model name override. Defaults to conversation model.
            temperature: Sampling temperature. Defaults to config value.
            max_tokens: Max response tokens. Defaults to config value.

        Returns:
            The LLM's text response.

        Raises:
            httpx.HTTPError: On transport errors, timeouts and non-2xx replies.
        """
        model = model or settings.llm.conversation_model
        if temperature is None:
            temperature = settings.llm.conversation_temperature
        if max_tokens is None:
            max_tokens = settings.llm.conversation_max_tokens

        api_messages: list[dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            *messages,
        ]

        prompt_hash = hashlib.md5(system_prompt.encode()).hexdigest()[:8]
        logger.debug("LLM request: model=%s prompt=%s messages=%d", model, prompt_hash, len(messages))

        start = time.monotonic()
        try:
            response = await self._client.post(
                "/api/chat",
                json={
                    "model": model,
                    "messages": api_messages,
                    "stream": False,
                    "think": False,
                    "options": {
                        "temperature": temperature,
                        "num_predict": max_tokens,
                    },
                },
            )
            response.raise_for_status()
            data: dict[str, Any] = response.json()
            elapsed_ms = int((time.monotonic() - start) * 1000)

            content: str = data["message"]["content"]
            completion_tokens = data.get("eval_count", 0)

            logger.info(
                "LLM response: model=%s latency=%dms tokens=%d",
                model,
                elapsed_ms,
                completion_tokens,
            )
            return content

        except httpx.TimeoutException:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.error("LLM timeout after %dms for model %s", elapsed_ms, model)
            raise

        except httpx.HTTPError:
            logger.exception("LLM HTTP error for model %s", model)
            raise

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
