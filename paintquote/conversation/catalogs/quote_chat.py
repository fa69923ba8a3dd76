"""Quote chat catalog.

Slot-filling conversation: every message also runs through the quote slot
grammar, so a contractor can say "Jane Doe, exterior, 1200 sqft walls" in
one go and the chat only asks for what is still missing.
"""

from __future__ import annotations

from decimal import Decimal
from functools import partial

from paintquote.conversation.parsing import (
    PAINT_QUALITY_CHOICES,
    PROJECT_TYPE_CHOICES,
    YES_NO,
    extract_quote_slots,
    parse_choice,
)
from paintquote.conversation.steps import COMPLETE, Branch, State, Step, StepCatalog, flatten, get_path, is_filled
from paintquote.schemas.enums import ExpectedType, ProjectType, Surface

FINISH_WORDS: tuple[str, ...] = (
    "done",
    "finalize",
    "finalize it",
    "finish",
    "that's all",
    "thats all",
    "create the quote",
    "create quote",
    "generate quote",
    "generate the quote",
)


def has_measurement(state: State) -> bool:
    for surface in Surface:
        value = get_path(state, f"measurements.{surface.value}_sqft")
        if value is not None and Decimal(str(value)) > 0:
            return True
    return False


def is_ready(state: State) -> bool:
    """Minimum the quote assembler needs: a customer name and some area."""
    return is_filled(state, "customer.name") and has_measurement(state)


def _surface_excluded(surface: Surface, state: State) -> bool:
    surfaces = get_path(state, "project.surfaces")
    if surfaces and surface.value not in surfaces:
        return True
    return surface == Surface.CEILINGS and get_path(state, "project.type") == ProjectType.EXTERIOR.value


def _skip_surface(surface: Surface, state: State) -> bool:
    return is_filled(state, f"measurements.{surface.value}_sqft") or _surface_excluded(surface, state)


def _parse_review(raw: str) -> str | None:
    return "yes" if parse_choice(raw, YES_NO) == "yes" else None


def quote_summary(state: State) -> dict[str, str]:
    """Extra template keys: a one-line summary and a "for <name>" suffix."""
    flat = flatten(state)
    name = flat.get("customer_name", "")
    parts = [
        f"{surface.value} {flat[f'measurements_{surface.value}_sqft']} sqft"
        for surface in Surface
        if flat.get(f"measurements_{surface.value}_sqft")
    ]
    lines = [f"Customer: {name}" if name else "Customer: (not set)"]
    if flat.get("customer_address"):
        lines.append(f"Address: {flat['customer_address']}")
    lines.append(f"Project: {flat.get('project_type', ProjectType.INTERIOR.value)}")
    lines.append(f"Areas: {', '.join(parts) if parts else '(none yet)'}")
    lines.append(f"Paint quality: {flat.get('products_paint_quality', 'better')}")
    if flat.get("pricing_markup_percentage"):
        lines.append(f"Markup: {flat['pricing_markup_percentage']}%")
    return {
        "summary": "\n".join(lines),
        "for_customer": f" for {name}" if name else "",
    }


def _surface_step(surface: Surface, following: str, suggestions: tuple[str, ...]) -> Step:
    return Step(
        id=f"{surface.value}_sqft",
        prompt=f"How many square feet of {surface.value} are we painting{{for_customer}}?",
        expected_type=ExpectedType.NUMBER,
        field=f"measurements.{surface.value}_sqft",
        default_next=following,
        section="measurements",
        skip_if=partial(_skip_surface, surface),
        optional=True,
        suggestions=suggestions,
        reprompt=f"How many square feet of {surface.value}? Say \"none\" to leave {surface.value} out.",
    )


_STEPS: list[Step] = [
    Step(
        id="customer_info",
        prompt=(
            "Hi! Let's put a quote together. Who is the customer, and what are we painting?\n"
            "(e.g., \"Jane Doe, 12 Oak St, interior walls and ceilings\")"
        ),
        default_next="customer_name",
        section="customer",
        parser=partial(extract_quote_slots, allow_bare_name=True),
        reprompt="Who is this quote for? A name is enough to get started.",
    ),
    Step(
        id="customer_name",
        prompt="What's the customer's name?",
        field="customer.name",
        default_next="project_type",
        section="customer",
        skip_if=lambda state: is_filled(state, "customer.name"),
    ),
    Step(
        id="project_type",
        prompt="Is this an interior job, exterior, or both?",
        field="project.type",
        default_next="walls_sqft",
        section="project",
        choices=PROJECT_TYPE_CHOICES,
        skip_if=lambda state: is_filled(state, "project.type") or is_filled(state, "project.surfaces"),
        suggestions=("Interior", "Exterior", "Both"),
        reprompt="Please answer interior, exterior, or both.",
    ),
    _surface_step(Surface.WALLS, "ceilings_sqft", ("800", "1200", "2000")),
    _surface_step(Surface.CEILINGS, "trim_sqft", ("200", "400", "None")),
    _surface_step(Surface.TRIM, "paint_quality", ("100", "150", "None")),
    Step(
        id="paint_quality",
        prompt="What paint quality should I price? (good, better, best, or premium)",
        field="products.paint_quality",
        default_next="markup",
        section="products",
        choices=PAINT_QUALITY_CHOICES,
        skip_if=lambda state: is_filled(state, "products.paint_quality"),
        optional=True,
        suggestions=("Good", "Better", "Best", "Premium"),
        reprompt="Please pick good, better, best, or premium (or say \"skip\" for better).",
    ),
    Step(
        id="markup",
        prompt="Any markup for this job? Say \"skip\" to use your company default.",
        expected_type=ExpectedType.PERCENTAGE,
        field="pricing.markup_percentage",
        default_next="review",
        section="pricing",
        skip_if=lambda state: is_filled(state, "pricing.markup_percentage"),
        optional=True,
        suggestions=("Skip", "35%", "45%"),
    ),
    Step(
        id="review",
        prompt="Here's what I have:\n{summary}\n\nShall I create the quote? (yes, or tell me what to change)",
        default_next=COMPLETE,
        section="review",
        parser=_parse_review,
        branches=(Branch(COMPLETE, lambda value, state: value == "yes"),),
        suggestions=("Yes", "Change walls to 1500 sqft"),
        reprompt="Reply \"yes\" to create the quote, or tell me what to change.",
    ),
]

QUOTE_CHAT_CATALOG = StepCatalog.build(
    "quote_chat",
    _STEPS,
    completion_prompt="Great, I have everything I need{for_customer}. Calculating the quote now.",
    extractor=extract_quote_slots,
    is_sufficient=is_ready,
    finish_words=FINISH_WORDS,
    context=quote_summary,
)
