"""Declarative intake steps and the catalog graph they form.

A catalog is a directed acyclic graph of steps keyed by id, ending at the
terminal id ``complete``. Steps never hold state: everything they need to
route comes from the (value, partial_state) pair the machine passes in.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from functools import cache
from typing import Any

from paintquote.conversation.parsing import (
    SubField,
    parse_choice,
    parse_compound,
    parse_number,
    parse_percentage,
    parse_text,
)
from paintquote.schemas.enums import ExpectedType

logger = logging.getLogger(__name__)

COMPLETE = "complete"

State = Mapping[str, Any]


def get_path(state: State, path: str) -> Any:
    """Read a dotted path from nested state; None if any segment is missing."""
    node: Any = state
    for part in path.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def is_filled(state: State, path: str) -> bool:
    value = get_path(state, path)
    return value is not None and value != "" and value != []


def flatten(state: State, prefix: str = "") -> dict[str, str]:
    """Flatten nested state to underscore keys for prompt templates."""
    flat: dict[str, str] = {}
    for key, value in state.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten(value, name))
        elif isinstance(value, list):
            flat[name] = ", ".join(str(v) for v in value)
        elif isinstance(value, Decimal):
            flat[name] = f"{value.normalize():f}"
        elif value is not None:
            flat[name] = str(value)
    return flat


class _TemplateContext(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render_template(template: str, state: State, extra: Mapping[str, str] | None = None) -> str:
    """Fill ``{dotted_path_as_underscores}`` placeholders; unknown keys render empty."""
    context = _TemplateContext(flatten(state))
    if extra:
        context.update(extra)
    return template.format_map(context).strip()


@dataclass(frozen=True)
class Branch:
    """Route to ``target`` when ``when(value, state)`` holds."""

    target: str
    when: Callable[[Any, State], bool]


@dataclass(frozen=True)
class Step:
    id: str
    prompt: str
    expected_type: ExpectedType = ExpectedType.TEXT
    field: str | None = None
    default_next: str = COMPLETE
    section: str = ""
    schema: tuple[SubField, ...] = ()
    choices: Mapping[str, str] | None = None
    branches: tuple[Branch, ...] = ()
    skip_if: Callable[[State], bool] | None = None
    parser: Callable[[str], Any] | None = None
    optional: bool = False
    suggestions: tuple[str, ...] = ()
    reprompt: str = ""

    @property
    def is_acknowledgement(self) -> bool:
        return self.field is None and self.parser is None and self.choices is None

    def parse(self, raw: str) -> Any:
        """Parse a raw answer; None when nothing usable was found."""
        if self.parser is not None:
            return self.parser(raw) or None
        if self.expected_type == ExpectedType.COMPOUND:
            return parse_compound(raw, self.schema)
        if self.expected_type == ExpectedType.NUMBER:
            return parse_number(raw)
        if self.expected_type == ExpectedType.PERCENTAGE:
            return parse_percentage(raw)
        if self.choices is not None:
            return parse_choice(raw, self.choices)
        return parse_text(raw)

    def delta(self, value: Any) -> dict[str, Any]:
        """Flat dotted-path delta for a parsed value.

        Compound values spread into ``field.sub``; dict values from a step
        without a field are already keyed by dotted path.
        """
        if value is None:
            return {}
        if isinstance(value, Mapping):
            if self.field is None:
                return dict(value)
            return {f"{self.field}.{key}": sub for key, sub in value.items()}
        if self.field is None:
            return {}
        return {self.field: value}

    def next(self, value: Any, state: State) -> str:
        for branch in self.branches:
            if branch.when(value, state):
                return branch.target
        return self.default_next

    def targets(self) -> set[str]:
        return {self.default_next, *(b.target for b in self.branches)}

    def render(self, state: State, extra: Mapping[str, str] | None = None) -> str:
        return render_template(self.prompt, state, extra)


@dataclass
class StepCatalog:
    """A named graph of steps with one entry point."""

    name: str
    steps: dict[str, Step]
    entry: str
    completion_prompt: str
    extractor: Callable[[str], dict[str, Any]] | None = None
    is_sufficient: Callable[[State], bool] | None = None
    finish_words: tuple[str, ...] = ()
    context: Callable[[State], dict[str, str]] | None = None
    version: int = 1
    _order: list[str] = dataclasses.field(default_factory=list, repr=False)

    @classmethod
    def build(cls, name: str, steps: list[Step], completion_prompt: str, **kwargs: Any) -> StepCatalog:
        catalog = cls(
            name=name,
            steps={step.id: step for step in steps},
            entry=steps[0].id,
            completion_prompt=completion_prompt,
            _order=[step.id for step in steps],
            **kwargs,
        )
        catalog.validate()
        return catalog

    def get(self, step_id: str | None) -> Step | None:
        if step_id is None:
            return None
        return self.steps.get(step_id)

    def section_start(self, section: str) -> Step:
        for step_id in self._order:
            if self.steps[step_id].section == section:
                return self.steps[step_id]
        return self.steps[self.entry]

    def resolve(self, step_id: str | None) -> Step:
        """Current step for a stored pointer.

        Unknown ids (e.g. from an older catalog version) resume at the start
        of the section sharing the longest id prefix, else at the entry.
        """
        if step_id is None:
            return self.steps[self.entry]
        step = self.steps.get(step_id)
        if step is not None:
            return step

        tokens = step_id.split("_")
        best: Step | None = None
        best_shared = 0
        for candidate_id in self._order:
            shared = 0
            for ours, theirs in zip(tokens, candidate_id.split("_")):
                if ours != theirs:
                    break
                shared += 1
            if shared > best_shared:
                best, best_shared = self.steps[candidate_id], shared

        resumed = self.section_start(best.section) if best is not None else self.steps[self.entry]
        logger.warning(
            "Unknown step %r in catalog %s v%d, resuming at %s",
            step_id,
            self.name,
            self.version,
            resumed.id,
        )
        return resumed

    def settle(self, step_id: str, state: State) -> str:
        """Skip forward past steps whose skip_if holds for ``state``."""
        for _ in range(len(self.steps) + 1):
            if step_id == COMPLETE:
                return step_id
            step = self.steps[step_id]
            if step.skip_if is None or not step.skip_if(state):
                return step_id
            step_id = step.default_next
        msg = f"Catalog {self.name} did not settle from {step_id}"
        raise RuntimeError(msg)

    def step_for_field(self, path: str) -> Step | None:
        """First step that fills ``path`` (or a parent of it)."""
        for step_id in self._order:
            step = self.steps[step_id]
            if step.field is not None and (path == step.field or path.startswith(f"{step.field}.")):
                return step
        return None

    def wants_finish(self, message: str, state: State) -> bool:
        if not self.finish_words or self.is_sufficient is None:
            return False
        text = message.strip().lower().rstrip(".!")
        return text in self.finish_words and self.is_sufficient(state)

    def validate(self) -> None:
        """Check that every target exists and the graph has no cycles."""
        for step in self.steps.values():
            unknown = {t for t in step.targets() if t != COMPLETE and t not in self.steps}
            if unknown:
                msg = f"Step {step.id} in {self.name} routes to unknown steps: {sorted(unknown)}"
                raise ValueError(msg)

        visiting: set[str] = set()
        done: set[str] = set()

        def visit(step_id: str) -> None:
            if step_id == COMPLETE or step_id in done:
                return
            if step_id in visiting:
                msg = f"Catalog {self.name} has a cycle through {step_id}"
                raise ValueError(msg)
            visiting.add(step_id)
            for target in self.steps[step_id].targets():
                visit(target)
            visiting.discard(step_id)
            done.add(step_id)

        for step_id in self._order:
            visit(step_id)

    def longest_path(self) -> int:
        """Most answers any route from the entry can take to reach complete."""

        @cache
        def depth(step_id: str) -> int:
            if step_id == COMPLETE:
                return 0
            return 1 + max(depth(t) for t in self.steps[step_id].targets())

        return depth(self.entry)
