"""Quote and setup endpoints.

Thin adapters: every rule lives in the calculators, the intake service and
the assembler. Domain errors propagate to the exception handlers in
paintquote.main, which render them as ``{error, details}``.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status

from paintquote.conversation.engine import IntakeService
from paintquote.quotes.assembler import create_quote
from paintquote.quotes.company import CompanyDirectory
from paintquote.schemas.api import ChatTurnRequest, ChatTurnResponse, SetupTurnResponse
from paintquote.schemas.enums import IntakeFlow
from paintquote.schemas.quote import CreateQuoteRequest, Quote

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["quotes"])


def get_intake_service(request: Request) -> IntakeService:
    return request.app.state.intake_service


def get_directory(request: Request) -> CompanyDirectory:
    return request.app.state.directory


@router.post("/quotes", status_code=status.HTTP_201_CREATED, response_model=Quote)
async def create_quote_endpoint(
    body: CreateQuoteRequest,
    service: IntakeService = Depends(get_intake_service),
    directory: CompanyDirectory = Depends(get_directory),
) -> Quote:
    """Direct (form) quote creation."""
    defaults = await directory.get_defaults(body.company_id)
    quote = create_quote(body, defaults)
    if service.quote_sink is not None:
        await service.quote_sink(quote)
    return quote


@router.post("/quotes/chat", response_model=ChatTurnResponse)
async def quote_chat(
    body: ChatTurnRequest,
    service: IntakeService = Depends(get_intake_service),
) -> ChatTurnResponse:
    """One turn of the quote chat."""
    turn = await service.handle_turn(IntakeFlow.QUOTE, body.session_id, body.company_id, body.message)
    return ChatTurnResponse(
        response=turn.response,
        is_complete=turn.is_complete,
        partial_quote=turn.partial_state,
        saved_quote=turn.quote,
        missing_fields=turn.missing.fields if turn.missing is not None else [],
        suggestions=turn.suggestions,
        current_step=turn.current_step,
    )


@router.post("/setup-assistant", response_model=SetupTurnResponse)
async def setup_assistant(
    body: ChatTurnRequest,
    service: IntakeService = Depends(get_intake_service),
) -> SetupTurnResponse:
    """One turn of the business setup wizard."""
    turn = await service.handle_turn(IntakeFlow.SETUP, body.session_id, body.company_id, body.message)
    return SetupTurnResponse(
        response=turn.response,
        is_complete=turn.is_complete,
        setup_progress=turn.partial_state,
        setup=turn.setup,
        suggestions=turn.suggestions,
        current_step=turn.current_step,
    )
