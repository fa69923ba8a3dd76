"""Assistant providers behind the conversational endpoints.

A provider turns (message, session) into an AdvanceResult. Every provider
drives the same intake machine, so transitions and extracted data never
depend on which one is configured; the LLM-backed provider only rewords
the reply. Providers are looked up by name from settings.llm.assistant_provider.
"""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

import httpx

from paintquote.config import settings
from paintquote.conversation.catalogs import get_catalog
from paintquote.conversation.machine import AdvanceResult, IntakeMachine
from paintquote.llm.client import OllamaClient
from paintquote.schemas.session import ConversationSession

logger = logging.getLogger(__name__)

PHRASING_PROMPT = """You are the assistant of a painting contractor's quoting tool.
Rewrite the draft reply below so it sounds friendly and natural.

Rules:
- Keep every number, name, price and question exactly as given.
- Do not ask for anything the draft does not ask for.
- Do not invent prices, products or measurements.
- Reply with the rewritten message only, at most 3 sentences plus any list in the draft."""


class QuoteAssistantProvider(ABC):
    """Interface every assistant provider implements."""

    name: str

    def machine_for(self, session: ConversationSession) -> IntakeMachine:
        return IntakeMachine(get_catalog(session.flow))

    @abstractmethod
    async def process_message(self, message: str, session: ConversationSession) -> AdvanceResult:
        """Advance ``session`` by one user message."""

    async def close(self) -> None:
        """Release any connections the provider holds."""


class RulesProvider(QuoteAssistantProvider):
    """The intake machine alone, with its templated prompts."""

    name = "rules"

    async def process_message(self, message: str, session: ConversationSession) -> AdvanceResult:
        return self.machine_for(session).advance(session, message)


class OllamaProvider(RulesProvider):
    """Intake machine plus an Ollama pass that rewords the reply.

    Falls back to the machine's own prompt when the model is unreachable
    or returns something unusable.
    """

    name = "ollama"

    def __init__(self, client: OllamaClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> OllamaClient:
        if self._client is None:
            self._client = OllamaClient()
        return self._client

    async def process_message(self, message: str, session: ConversationSession) -> AdvanceResult:
        result = await super().process_message(message, session)
        phrased = await self.rephrase(message, result.assistant_prompt)
        return dataclasses.replace(result, assistant_prompt=phrased)

    async def rephrase(self, message: str, draft: str) -> str:
        try:
            content = await self.client.chat(
                PHRASING_PROMPT,
                [{"role": "user", "content": f"User said: {message}\n\nDraft reply:\n{draft}"}],
            )
        except (httpx.HTTPError, KeyError, ValueError):
            logger.warning("LLM phrasing failed, using the templated reply")
            return draft
        content = content.strip()
        return content or draft

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


PROVIDERS: dict[str, Callable[[], QuoteAssistantProvider]] = {
    RulesProvider.name: RulesProvider,
    OllamaProvider.name: OllamaProvider,
}


def get_provider(name: str | None = None) -> QuoteAssistantProvider:
    """Instantiate the provider registered under ``name`` (default: from settings)."""
    name = (name or settings.llm.assistant_provider).lower()
    try:
        factory = PROVIDERS[name]
    except KeyError:
        msg = f"Unknown assistant provider: {name}. Must be one of {sorted(PROVIDERS)}"
        raise ValueError(msg) from None
    return factory()
