"""Tests for the conversation orchestrator.

Covers: quote chat turns through to a saved quote, company defaults
snapshot, sinks, session clearing, rate limiting, ownership, missing-field
routing, unpriceable jobs routed back to measurements, setup completion
updating the company directory.

Uses the in-memory session store and rate limiter.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from paintquote.conversation.engine import IntakeService
from paintquote.conversation.providers import RulesProvider
from paintquote.errors import CompanyNotFoundError, RateLimitExceeded, SessionOwnershipError
from paintquote.quotes.company import CompanyDirectory
from paintquote.schemas.enums import IntakeFlow, PaintCategory, ProjectType
from paintquote.schemas.pricing import CompanyDefaults
from paintquote.schemas.session import SessionDelta
from paintquote.security.rate_limiter import InMemoryRateLimiter
from paintquote.sessions.store import InMemorySessionStore

DEFAULTS = CompanyDefaults(
    walls_rate=Decimal("3.00"),
    ceilings_rate=Decimal("2.00"),
    trim_rate=Decimal("5.00"),
    markup_percentage=Decimal("45"),
)


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def directory() -> CompanyDirectory:
    return CompanyDirectory({7: DEFAULTS})


@pytest.fixture()
def service(store: InMemorySessionStore, directory: CompanyDirectory) -> IntakeService:
    return IntakeService(
        store,
        InMemoryRateLimiter(),
        directory,
        RulesProvider(),
        quote_sink=AsyncMock(),
        setup_sink=AsyncMock(),
        rate_limit=20,
        rate_window=60,
    )


async def _chat(service: IntakeService, *messages: str, session_id: str = "abc", company_id: int = 7):
    turn = None
    for message in messages:
        turn = await service.handle_turn(IntakeFlow.QUOTE, session_id, company_id, message)
    return turn


class TestQuoteChat:
    @pytest.mark.asyncio
    async def test_first_turn_persists_progress(self, service: IntakeService, store: InMemorySessionStore) -> None:
        turn = await _chat(service, "123, walls only, John Smith")

        assert not turn.is_complete
        assert turn.current_step == "walls_sqft"
        assert turn.response == "How many square feet of walls are we painting for John Smith?"
        session = await store.get("abc", 7)
        assert session.step_pointer == "walls_sqft"
        assert session.partial_state["customer"]["name"] == "John Smith"
        assert session.company_defaults == DEFAULTS
        assert session.turn_count == 1

    @pytest.mark.asyncio
    async def test_full_chat_saves_quote(self, service: IntakeService, store: InMemorySessionStore) -> None:
        turn = await _chat(service, "123, walls only, John Smith", "1000", "skip", "skip", "yes")

        assert turn.is_complete
        quote = turn.quote
        assert quote.customer.name == "John Smith"
        assert quote.pricing.final_price == Decimal("4350.00")
        assert quote.metadata.ai_provider == "rules"
        assert "Customer: John Smith" in quote.metadata.conversation_summary
        assert f"Quote {quote.metadata.quote_id} for John Smith: $4,350.00" in turn.response
        service.quote_sink.assert_awaited_once_with(quote)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_defaults_snapshot_kept_for_session(
        self,
        service: IntakeService,
        directory: CompanyDirectory,
    ) -> None:
        """Company rate changes mid-conversation do not affect the open quote."""
        await _chat(service, "Jane Doe, walls 1000, interior")
        await directory.save_defaults(7, DEFAULTS.model_copy(update={"walls_rate": Decimal("9.00")}))
        turn = await _chat(service, "done")
        assert turn.is_complete
        assert turn.quote.pricing.walls_rate == Decimal("3.00")

    @pytest.mark.asyncio
    async def test_unknown_company(self, service: IntakeService) -> None:
        with pytest.raises(CompanyNotFoundError):
            await _chat(service, "Jane Doe", company_id=99)

    @pytest.mark.asyncio
    async def test_other_company_session(self, service: IntakeService, directory: CompanyDirectory) -> None:
        await directory.save_defaults(8, DEFAULTS)
        await _chat(service, "Jane Doe")
        with pytest.raises(SessionOwnershipError):
            await _chat(service, "hello", company_id=8)

    @pytest.mark.asyncio
    async def test_rate_limited(self, store: InMemorySessionStore, directory: CompanyDirectory) -> None:
        service = IntakeService(store, InMemoryRateLimiter(), directory, RulesProvider(), rate_limit=2, rate_window=60)
        await _chat(service, "Jane Doe", "interior")
        with pytest.raises(RateLimitExceeded) as exc_info:
            await _chat(service, "1000")
        assert exc_info.value.retry_after >= 1

    @pytest.mark.asyncio
    async def test_missing_fields_route_back(self, service: IntakeService, store: InMemorySessionStore) -> None:
        """Reaching the review without any area asks for walls again."""
        await store.get("abc", 7)
        await store.put("abc", SessionDelta(step_pointer="review", partial_state={"customer.name": "Jane Doe"}))

        turn = await _chat(service, "yes")

        assert not turn.is_complete
        assert turn.current_step == "walls_sqft"
        assert turn.missing.fields == ["measurements.walls_sqft"]
        assert turn.response.startswith("I still need a bit more before I can price this")
        assert (await store.get("abc", 7)).step_pointer == "walls_sqft"
        service.quote_sink.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_customer_cue_among_other_slots(self, service: IntakeService) -> None:
        turn = await _chat(service, "Hi, I need a quote for interior painting, customer is Jane Doe and walls 1000 sqft")

        assert turn.partial_state["customer"]["name"] == "Jane Doe"
        assert turn.partial_state["measurements"]["walls_sqft"] == Decimal("1000")
        assert turn.partial_state["project"]["type"] == "interior"
        assert turn.current_step == "ceilings_sqft"

    @pytest.mark.asyncio
    async def test_unpriceable_job_asks_for_measurements_again(
        self,
        service: IntakeService,
        store: InMemorySessionStore,
    ) -> None:
        """A gallon of trim paint costs more than 10 sqft of trim work; the chat carries on."""
        turn = await _chat(service, "Jane Doe, trim only", "10", "done")

        assert not turn.is_complete
        assert turn.current_step == "trim_sqft"
        assert turn.response.startswith("I couldn't price this job as it stands")
        assert turn.response.endswith("How many square feet of trim are we painting for Jane Doe?")
        assert (await store.get("abc", 7)).step_pointer == "trim_sqft"
        service.quote_sink.assert_not_awaited()

        turn = await _chat(service, "20", "done")
        assert turn.is_complete
        assert turn.quote.pricing.final_price == Decimal("145.00")
        service.quote_sink.assert_awaited_once_with(turn.quote)

    @pytest.mark.asyncio
    async def test_opening(self, service: IntakeService) -> None:
        turn = await service.opening(IntakeFlow.QUOTE, "new", 7)
        assert turn.current_step == "customer_info"
        assert turn.response.startswith("Hi! Let's put a quote together.")


class TestSetupFlow:
    @pytest.mark.asyncio
    async def test_setup_saves_company_defaults(self, service: IntakeService, directory: CompanyDirectory) -> None:
        answers = [
            "hi",
            "Sam Rivera",
            "Rivera Painting",
            "12 Main St",
            "interior",
            "skip",
            "Benjamin Moore",
            "Regal Select, $65, 400",
            "skip",
            "skip",
            "2.25",
            "1.75",
            "3.50",
            "skip",
            "skip",
            "40",
            "8%",
            "materials only",
        ]
        turn = None
        for message in answers:
            turn = await service.handle_turn(IntakeFlow.SETUP, "setup-1", 12, message)

        assert turn.is_complete
        assert "**Business**: Rivera Painting" in turn.response
        defaults = await directory.get_defaults(12)
        assert defaults.walls_rate == Decimal("2.25")
        assert defaults.markup_percentage == Decimal("40")
        assert defaults.tax_rate == Decimal("8")
        assert defaults.tax_on_materials_only is True
        wall = defaults.material_for(ProjectType.INTERIOR, PaintCategory.WALL_PAINT)
        assert wall.cost_per_gallon == Decimal("65")
        service.setup_sink.assert_awaited_once()
        assert [row.product_name for row in turn.setup.products] == ["Regal Select"]
