"""Request/response bodies of the conversational HTTP endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from paintquote.schemas.company import SetupResult
from paintquote.schemas.quote import Quote


class ChatTurnRequest(BaseModel):
    message: str = Field(max_length=2000)
    session_id: str = Field(min_length=1, max_length=128)
    company_id: int = Field(gt=0)


class ChatTurnResponse(BaseModel):
    response: str
    is_complete: bool
    partial_quote: dict[str, Any] = Field(default_factory=dict)
    saved_quote: Quote | None = None
    missing_fields: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    current_step: str


class SetupTurnResponse(BaseModel):
    response: str
    is_complete: bool
    setup_progress: dict[str, Any] = Field(default_factory=dict)
    setup: SetupResult | None = None
    suggestions: list[str] = Field(default_factory=list)
    current_step: str
