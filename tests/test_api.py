"""Tests for the HTTP API.

Covers:
- POST /api/quotes: 201 with a priced quote, 400 on bad input, 404 for unknown companies
- POST /api/quotes/chat: turns, saved quote on completion, 404 ownership, 429 with Retry-After
- POST /api/setup-assistant: turns and completion
- Error envelope {error, details} for domain, validation and unexpected errors
- GET /health and provider shutdown
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from paintquote.conversation.engine import IntakeService
from paintquote.conversation.providers import RulesProvider
from paintquote.main import app
from paintquote.quotes.company import CompanyDirectory
from paintquote.schemas.pricing import CompanyDefaults
from paintquote.security.rate_limiter import InMemoryRateLimiter
from paintquote.sessions.store import InMemorySessionStore

DEFAULTS = CompanyDefaults(
    walls_rate=Decimal("3.00"),
    ceilings_rate=Decimal("2.00"),
    trim_rate=Decimal("5.00"),
    markup_percentage=Decimal("45"),
)


@pytest.fixture()
def service() -> IntakeService:
    directory = CompanyDirectory({7: DEFAULTS, 8: DEFAULTS})
    return IntakeService(
        InMemorySessionStore(),
        InMemoryRateLimiter(),
        directory,
        RulesProvider(),
        quote_sink=AsyncMock(),
        rate_limit=3,
        rate_window=60,
    )


@pytest.fixture()
def client(service: IntakeService):
    """Test client wired to a fresh in-memory service."""
    saved = (app.state.directory, app.state.intake_service)
    app.state.directory = service.directory
    app.state.intake_service = service
    yield TestClient(app, raise_server_exceptions=False)
    app.state.directory, app.state.intake_service = saved


def _chat(client: TestClient, message: str, session_id: str = "abc", company_id: int = 7):
    return client.post(
        "/api/quotes/chat",
        json={"message": message, "session_id": session_id, "company_id": company_id},
    )


class TestCreateQuote:
    def test_created(self, client: TestClient, service: IntakeService) -> None:
        response = client.post(
            "/api/quotes",
            json={"company_id": 7, "customer_name": "Jane Doe", "walls_sqft": 1000},
        )
        assert response.status_code == 201
        body = response.json()
        assert Decimal(body["pricing"]["final_price"]) == Decimal("4350.00")
        assert body["metadata"]["status"] == "draft"
        assert body["metadata"]["quote_id"].startswith("QUOTE-")
        service.quote_sink.assert_awaited_once()

    def test_no_area(self, client: TestClient) -> None:
        response = client.post("/api/quotes", json={"company_id": 7, "customer_name": "Jane Doe"})
        assert response.status_code == 400
        assert response.json()["details"]["errors"][0]["field"] == "measurements"

    def test_invalid_body(self, client: TestClient) -> None:
        response = client.post("/api/quotes", json={"company_id": 7, "walls_sqft": 1000})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request data"

    def test_unknown_company(self, client: TestClient) -> None:
        response = client.post(
            "/api/quotes",
            json={"company_id": 99, "customer_name": "Jane Doe", "walls_sqft": 1000},
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Company not found", "details": {"company_id": 99}}

    def test_pricing_invariant(self, client: TestClient) -> None:
        response = client.post(
            "/api/quotes",
            json={
                "company_id": 7,
                "customer_name": "Jane Doe",
                "walls_sqft": 1000,
                "custom_rates": {"walls_rate": "0.01"},
            },
        )
        assert response.status_code == 500
        assert "material_cost" in response.json()["details"]


class TestQuoteChat:
    def test_turn(self, client: TestClient) -> None:
        response = _chat(client, "123, walls only, John Smith")
        assert response.status_code == 200
        body = response.json()
        assert body["is_complete"] is False
        assert body["current_step"] == "walls_sqft"
        assert body["response"] == "How many square feet of walls are we painting for John Smith?"
        assert body["partial_quote"]["customer"]["name"] == "John Smith"
        assert body["suggestions"] == ["800", "1200", "2000"]

    def test_completion_returns_saved_quote(self, client: TestClient) -> None:
        _chat(client, "Jane Doe, walls 1000, interior")
        body = _chat(client, "done").json()
        assert body["is_complete"] is True
        assert body["saved_quote"]["customer"]["name"] == "Jane Doe"
        assert Decimal(body["saved_quote"]["pricing"]["final_price"]) == Decimal("4350.00")

    def test_other_company_gets_404(self, client: TestClient) -> None:
        _chat(client, "Jane Doe")
        response = _chat(client, "hello", company_id=8)
        assert response.status_code == 404
        assert response.json()["error"] == "Session not found"

    def test_rate_limited(self, client: TestClient) -> None:
        for message in ("Jane Doe", "interior", "1000"):
            assert _chat(client, message).status_code == 200
        response = _chat(client, "200")
        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) >= 1
        assert response.json()["details"]["remaining"] == 0

    def test_message_too_long(self, client: TestClient) -> None:
        response = _chat(client, "x" * 2001)
        assert response.status_code == 400

    def test_unexpected_error(self, client: TestClient, service: IntakeService) -> None:
        service.handle_turn = AsyncMock(side_effect=RuntimeError("boom"))
        response = _chat(client, "Jane Doe")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestSetupAssistant:
    def test_turn(self, client: TestClient) -> None:
        response = client.post("/api/setup-assistant", json={"message": "hi", "session_id": "setup-1", "company_id": 12})
        assert response.status_code == 200
        body = response.json()
        assert body["current_step"] == "owner_name"
        assert body["response"].endswith("First, what's your name?")
        assert body["setup"] is None


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_shutdown_closes_provider(service: IntakeService) -> None:
    service.provider.close = AsyncMock()
    saved = (app.state.directory, app.state.intake_service)
    app.state.directory, app.state.intake_service = service.directory, service
    try:
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            service.provider.close.assert_not_awaited()
        service.provider.close.assert_awaited_once()
    finally:
        app.state.directory, app.state.intake_service = saved
