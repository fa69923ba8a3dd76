"""Conversation session schemas.

A session is the whole durable state of one in-progress intake
conversation. The intake machine is stateless between turns; everything it
needs comes back from the session store in this shape.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from paintquote.schemas.enums import IntakeFlow
from paintquote.schemas.pricing import CompanyDefaults


class ConversationSession(BaseModel):
    """State of one conversation, keyed by session_id and owned by one company."""

    session_id: str
    company_id: int
    flow: IntakeFlow = IntakeFlow.QUOTE
    step_pointer: str | None = None  # None → catalog entry step
    partial_state: dict[str, Any] = Field(default_factory=dict)
    company_defaults: CompanyDefaults | None = None
    unparsed: list[str] = Field(default_factory=list)
    turn_count: int = 0
    created_at: datetime
    last_activity_at: datetime


class SessionDelta(BaseModel):
    """Changes applied by SessionStore.put.

    ``partial_state`` holds dotted field paths and is merged; the other
    fields overwrite when provided.
    """

    step_pointer: str | None = None
    reset_pointer: bool = False
    partial_state: dict[str, Any] = Field(default_factory=dict)
    company_defaults: CompanyDefaults | None = None
    unparsed: list[str] | None = None
    turn_increment: int = 0
