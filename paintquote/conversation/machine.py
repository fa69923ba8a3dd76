"""Intake state machine shared by the quote chat and setup flows.

The machine is a pure function of (session, message): it parses the answer
for the current step, merges what it extracted into the partial state and
picks the next step. Only the catalog decides transitions. The input
session is never mutated; callers persist ``AdvanceResult.session``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from paintquote.conversation.parsing import is_skip
from paintquote.conversation.steps import COMPLETE, Step, StepCatalog, render_template
from paintquote.schemas.enums import ExpectedType
from paintquote.schemas.session import ConversationSession

logger = logging.getLogger(__name__)

# Most recent unparseable answers kept on the session
MAX_UNPARSED = 5


@dataclass(frozen=True)
class AdvanceResult:
    session: ConversationSession
    assistant_prompt: str
    is_complete: bool
    extracted_delta: dict[str, Any] = field(default_factory=dict)
    step_id: str = ""
    suggestions: tuple[str, ...] = ()


def merge_delta(state: dict[str, Any], delta: Mapping[str, Any]) -> dict[str, Any]:
    """Apply a dotted-path delta to nested state in place.

    Overwrites by path, skips None values and never removes keys, so
    applying the same delta twice is a no-op the second time.
    """
    for path, value in delta.items():
        if value is None:
            continue
        node = state
        *parents, leaf = path.split(".")
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[leaf] = list(value) if isinstance(value, list) else value
    return state


def _parent(path: str) -> str:
    return path.rsplit(".", 1)[0]


class IntakeMachine:
    """Advances one conversation session through a step catalog."""

    def __init__(self, catalog: StepCatalog) -> None:
        self.catalog = catalog

    def _render(self, template: str, state: Mapping[str, Any]) -> str:
        extra = self.catalog.context(state) if self.catalog.context is not None else None
        return render_template(template, state, extra)

    def opening_prompt(self, session: ConversationSession) -> str:
        """The question the session is currently waiting on."""
        step = self.catalog.resolve(session.step_pointer)
        return self._render(step.prompt, session.partial_state)

    def current_suggestions(self, session: ConversationSession) -> tuple[str, ...]:
        return self.catalog.resolve(session.step_pointer).suggestions

    def _reprompt(self, step: Step, text: str, state: Mapping[str, Any], *, opener: bool = False) -> str:
        if opener:
            # First message of a session that does not answer the entry question, e.g. "hi"
            return self._render(step.prompt, state)
        question = step.reprompt or self._render(step.prompt, state)
        if step.expected_type in (ExpectedType.NUMBER, ExpectedType.PERCENTAGE):
            return f'I couldn\'t read a number from "{text}". {question}'
        if not text:
            return question
        return f"Sorry, I didn't get that. {question}"

    def _complete(self, session: ConversationSession, step: Step, delta: dict[str, Any]) -> AdvanceResult:
        session.step_pointer = step.id
        logger.info(
            "Intake complete: catalog=%s session=%s turns=%d",
            self.catalog.name,
            session.session_id,
            session.turn_count,
        )
        return AdvanceResult(
            session=session,
            assistant_prompt=self._render(self.catalog.completion_prompt, session.partial_state),
            is_complete=True,
            extracted_delta=delta,
            step_id=step.id,
        )

    def advance(self, session: ConversationSession, message: str) -> AdvanceResult:
        """Process one user message.

        Args:
            session: Current session state (left untouched).
            message: Raw user text.

        Returns:
            AdvanceResult with the updated session, the next prompt and
            whether the catalog reached ``complete``.
        """
        catalog = self.catalog
        updated = session.model_copy(deep=True)
        updated.turn_count += 1
        state = updated.partial_state
        step = catalog.resolve(updated.step_pointer)
        text = message.strip()

        if catalog.wants_finish(text, state):
            return self._complete(updated, step, {})

        skipped = step.optional and is_skip(text)
        value = None if skipped else step.parse(text)
        extracted = catalog.extractor(text) if catalog.extractor is not None and not skipped else {}

        # A structured extraction for the same group beats the step's own blunt parse
        if step.field is not None and any(_parent(key) == _parent(step.field) for key in extracted):
            value = extracted.get(step.field)

        delta = {**extracted, **step.delta(value)}
        merge_delta(state, delta)

        if value is not None or skipped or step.is_acknowledgement or step.expected_type == ExpectedType.COMPOUND:
            next_id = step.next(value, state)
        elif delta:
            # Other slots were filled; settle decides whether this step still needs asking
            next_id = step.id
        else:
            updated.unparsed = [*updated.unparsed, text][-MAX_UNPARSED:]
            updated.step_pointer = step.id
            logger.debug("Unparsed answer for step %s: %r", step.id, text)
            return AdvanceResult(
                session=updated,
                assistant_prompt=self._reprompt(
                    step, text, state, opener=step.id == catalog.entry and updated.turn_count == 1
                ),
                is_complete=False,
                extracted_delta=delta,
                step_id=step.id,
                suggestions=step.suggestions,
            )

        next_id = catalog.settle(next_id, state)
        if next_id == COMPLETE:
            return self._complete(updated, step, delta)

        next_step = catalog.steps[next_id]
        updated.step_pointer = next_id
        return AdvanceResult(
            session=updated,
            assistant_prompt=self._render(next_step.prompt, state),
            is_complete=False,
            extracted_delta=delta,
            step_id=next_id,
            suggestions=next_step.suggestions,
        )
