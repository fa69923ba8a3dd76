"""Conversation orchestrator for the quote chat and setup flows.

One call per user message: rate limit → lock the session → load it →
let the provider advance the intake machine → either persist the delta or,
once the catalog completes, assemble the quote / company profile, hand it
to the sinks and clear the session.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from paintquote.config import settings
from paintquote.conversation.catalogs import QUOTE_CHAT_CATALOG, get_catalog
from paintquote.conversation.catalogs.quote_chat import quote_summary
from paintquote.conversation.machine import AdvanceResult, IntakeMachine
from paintquote.conversation.providers import QuoteAssistantProvider, get_provider
from paintquote.conversation.steps import Step, get_path
from paintquote.errors import PricingInvariantError
from paintquote.quotes.assembler import assemble
from paintquote.quotes.company import CompanyDirectory, build_setup_result, to_decimal
from paintquote.schemas.company import SetupResult
from paintquote.schemas.enums import IntakeFlow, Surface
from paintquote.schemas.quote import MissingFields, Quote
from paintquote.schemas.session import ConversationSession, SessionDelta
from paintquote.security.rate_limiter import RateLimiter, chat_key
from paintquote.sessions.store import SessionStore

logger = logging.getLogger(__name__)

QuoteSink = Callable[[Quote], Awaitable[None]]
SetupSink = Callable[[int, SetupResult], Awaitable[None]]


@dataclass
class TurnResult:
    """What one conversational turn produced, ready for the API layer."""

    response: str
    is_complete: bool
    current_step: str
    suggestions: list[str] = field(default_factory=list)
    partial_state: dict[str, Any] = field(default_factory=dict)
    quote: Quote | None = None
    setup: SetupResult | None = None
    missing: MissingFields | None = None


class IntakeService:
    """Runs conversational turns against a session store."""

    def __init__(
        self,
        store: SessionStore,
        rate_limiter: RateLimiter,
        directory: CompanyDirectory,
        provider: QuoteAssistantProvider | None = None,
        *,
        quote_sink: QuoteSink | None = None,
        setup_sink: SetupSink | None = None,
        rate_limit: int | None = None,
        rate_window: int | None = None,
    ) -> None:
        self.store = store
        self.rate_limiter = rate_limiter
        self.directory = directory
        self.provider = provider or get_provider()
        self.quote_sink = quote_sink
        self.setup_sink = setup_sink
        self.rate_limit = rate_limit or settings.rate_limit.chat_rate_limit
        self.rate_window = rate_window or settings.rate_limit.chat_rate_window

    async def handle_turn(self, flow: IntakeFlow, session_id: str, company_id: int, message: str) -> TurnResult:
        """Process one user message for ``session_id``.

        Raises:
            RateLimitExceeded: Too many turns for this session in the window.
            SessionOwnershipError: The session belongs to another company.
            CompanyNotFoundError: Quote chat for a company with no defaults.
        """
        await self.rate_limiter.enforce(
            chat_key(company_id, session_id, flow.value),
            limit=self.rate_limit,
            window=self.rate_window,
        )

        async with self.store.lock(session_id):
            session = await self.store.get(session_id, company_id, flow)

            snapshot = None
            if flow == IntakeFlow.QUOTE and session.company_defaults is None:
                snapshot = await self.directory.get_defaults(company_id)
                session = session.model_copy(update={"company_defaults": snapshot})

            result = await self.provider.process_message(message, session)
            logger.info(
                "Turn %d for session %s (%s): step=%s complete=%s",
                result.session.turn_count,
                session_id,
                flow.value,
                result.step_id,
                result.is_complete,
            )

            if result.is_complete and flow == IntakeFlow.QUOTE:
                return await self._finish_quote(result, snapshot)
            if result.is_complete:
                return await self._finish_setup(result)

            await self.store.put(session_id, self._delta(result, snapshot))
            return TurnResult(
                response=result.assistant_prompt,
                is_complete=False,
                current_step=result.step_id,
                suggestions=list(result.suggestions),
                partial_state=result.session.partial_state,
            )

    @staticmethod
    def _delta(result: AdvanceResult, snapshot: Any = None, step_pointer: str | None = None) -> SessionDelta:
        return SessionDelta(
            step_pointer=step_pointer or result.session.step_pointer,
            partial_state=result.extracted_delta,
            company_defaults=snapshot,
            unparsed=result.session.unparsed,
            turn_increment=1,
        )

    async def _finish_quote(self, result: AdvanceResult, snapshot: Any) -> TurnResult:
        session = result.session
        state = session.partial_state
        try:
            outcome = assemble(
                state,
                session.company_defaults,
                company_id=session.company_id,
                ai_provider=self.provider.name,
                conversation_summary=quote_summary(state)["summary"],
            )
        except PricingInvariantError as exc:
            return await self._ask_to_remeasure(result, exc, snapshot)

        if isinstance(outcome, MissingFields):
            return await self._ask_for_missing(result, outcome, snapshot)

        if self.quote_sink is not None:
            await self.quote_sink(outcome)
        await self.store.clear(session.session_id)

        pricing = outcome.pricing
        response = (
            f"{result.assistant_prompt}\n\n"
            f"Quote {outcome.metadata.quote_id} for {outcome.customer.name}: "
            f"${pricing.final_price:,.2f} "
            f"(materials ${pricing.total_material_cost:,.2f}, labor ${pricing.total_labor_cost:,.2f}, "
            f"markup {pricing.markup_percentage.normalize():f}%)."
        )
        return TurnResult(
            response=response,
            is_complete=True,
            current_step=result.step_id,
            partial_state=state,
            quote=outcome,
        )

    async def _rewind(
        self,
        result: AdvanceResult,
        step: Step,
        reason: str,
        snapshot: Any,
        missing: MissingFields | None = None,
    ) -> TurnResult:
        """Persist the turn with the pointer moved back to ``step`` and ask it again."""
        rewound = result.session.model_copy(update={"step_pointer": step.id})
        question = IntakeMachine(QUOTE_CHAT_CATALOG).opening_prompt(rewound)

        await self.store.put(result.session.session_id, self._delta(result, snapshot, step_pointer=step.id))
        return TurnResult(
            response=f"{reason} {question}",
            is_complete=False,
            current_step=step.id,
            suggestions=list(step.suggestions),
            partial_state=result.session.partial_state,
            missing=missing,
        )

    async def _ask_for_missing(self, result: AdvanceResult, missing: MissingFields, snapshot: Any) -> TurnResult:
        """Route back to the first step that can fill a missing field."""
        catalog = QUOTE_CHAT_CATALOG
        step = next(
            (s for s in (catalog.step_for_field(f) for f in missing.fields) if s is not None),
            catalog.resolve(None),
        )
        logger.info(
            "Quote for session %s not ready, missing %s; asking %s",
            result.session.session_id,
            ", ".join(missing.fields),
            step.id,
        )
        problems = "; ".join(issue.message for issue in missing.errors)
        reason = f"I still need a bit more before I can price this ({problems})."
        return await self._rewind(result, step, reason, snapshot, missing)

    async def _ask_to_remeasure(self, result: AdvanceResult, error: PricingInvariantError, snapshot: Any) -> TurnResult:
        """Pricing refused the areas as given; ask for the first measured surface again."""
        state = result.session.partial_state
        surface = next(
            (s for s in Surface if (to_decimal(get_path(state, f"measurements.{s.value}_sqft")) or 0) > 0),
            Surface.WALLS,
        )
        step = QUOTE_CHAT_CATALOG.steps[f"{surface.value}_sqft"]
        logger.warning(
            "Quote for session %s could not be priced (%s); asking %s again",
            result.session.session_id,
            error.details,
            step.id,
        )
        reason = (
            f"I couldn't price this job as it stands: at your rates the paint alone costs more than "
            f"the {surface.value} work. Please double-check the measurements."
        )
        return await self._rewind(result, step, reason, snapshot)

    async def _finish_setup(self, result: AdvanceResult) -> TurnResult:
        session = result.session
        setup = build_setup_result(session.company_id, session.partial_state)
        await self.directory.save_defaults(session.company_id, setup.company_defaults)
        if self.setup_sink is not None:
            await self.setup_sink(session.company_id, setup)
        await self.store.clear(session.session_id)
        logger.info(
            "Setup complete for company %s: %d preferences, %d products",
            session.company_id,
            len(setup.preferences),
            len(setup.products),
        )
        return TurnResult(
            response=result.assistant_prompt,
            is_complete=True,
            current_step=result.step_id,
            partial_state=session.partial_state,
            setup=setup,
        )

    async def opening(self, flow: IntakeFlow, session_id: str, company_id: int) -> TurnResult:
        """The question a session is currently waiting on, without advancing it."""
        async with self.store.lock(session_id):
            session: ConversationSession = await self.store.get(session_id, company_id, flow)
        machine = IntakeMachine(get_catalog(flow))
        return TurnResult(
            response=machine.opening_prompt(session),
            is_complete=False,
            current_step=machine.catalog.resolve(session.step_pointer).id,
            suggestions=list(machine.current_suggestions(session)),
            partial_state=session.partial_state,
        )
