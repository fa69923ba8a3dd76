"""Business-setup wizard catalog.

Walks a new company through owner and business details, the paint products
it uses per project type, its $/sqft rates, markup and tax. Answers land
under ``setup.*`` in the session's partial state.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from paintquote.conversation.parsing import SubField, parse_owner_name
from paintquote.conversation.steps import COMPLETE, Branch, State, Step, StepCatalog, get_path
from paintquote.schemas.enums import ExpectedType, PaintCategory, ProjectType

SERVICE_CHOICES: dict[str, str] = {
    "both": ProjectType.BOTH.value,
    "interior and exterior": ProjectType.BOTH.value,
    "exterior and interior": ProjectType.BOTH.value,
    "interiors and exteriors": ProjectType.BOTH.value,
    "inside and outside": ProjectType.BOTH.value,
    "exterior only": ProjectType.EXTERIOR.value,
    "interior only": ProjectType.INTERIOR.value,
    "exterior": ProjectType.EXTERIOR.value,
    "exteriors": ProjectType.EXTERIOR.value,
    "outside": ProjectType.EXTERIOR.value,
    "interior": ProjectType.INTERIOR.value,
    "interiors": ProjectType.INTERIOR.value,
    "inside": ProjectType.INTERIOR.value,
}

TAX_SCOPE_CHOICES: dict[str, str] = {
    "materials only": "materials",
    "just materials": "materials",
    "materials": "materials",
    "everything": "all",
    "whole quote": "all",
    "total": "all",
    "all": "all",
}

PRODUCT_SCHEMA = (
    SubField("product_name"),
    SubField("cost_per_gallon", ExpectedType.NUMBER),
    SubField("spread_rate", ExpectedType.NUMBER),
)

# (project type, category, id token, label, brand suggestions, detail suggestions)
_PRODUCT_SECTIONS: list[tuple[ProjectType, PaintCategory, str, str, tuple[str, ...], tuple[str, ...]]] = [
    (
        ProjectType.INTERIOR, PaintCategory.PRIMER, "primer", "Interior Primer",
        ("Kilz", "Zinsser", "Sherwin-Williams"),
        ("Bulls Eye 123, $28, 400", "Premium Primer, $25, 380", "ProBlock, $32, 350"),
    ),
    (
        ProjectType.INTERIOR, PaintCategory.WALL_PAINT, "wall", "Interior Wall Paint",
        ("Sherwin-Williams", "Benjamin Moore", "Behr"),
        ("ProClassic, $58, 350", "Regal Select, $65, 400", "Premium Plus, $45, 380"),
    ),
    (
        ProjectType.INTERIOR, PaintCategory.CEILING_PAINT, "ceiling", "Interior Ceiling Paint",
        ("Benjamin Moore", "Sherwin-Williams", "Behr"),
        ("Ceiling Paint, $42, 400", "ProMar 200, $38, 380", "Premium Plus, $35, 400"),
    ),
    (
        ProjectType.INTERIOR, PaintCategory.TRIM_PAINT, "trim", "Interior Trim Paint",
        ("Benjamin Moore", "Sherwin-Williams", "PPG"),
        ("Advance, $68, 300", "ProClassic, $65, 320", "Break-Through, $72, 280"),
    ),
    (
        ProjectType.EXTERIOR, PaintCategory.PRIMER, "primer", "Exterior Primer",
        ("Kilz", "Zinsser", "Sherwin-Williams"),
        ("Cover Stain, $38, 350", "Adhesion Primer, $35, 380", "Fresh Start, $42, 320"),
    ),
    (
        ProjectType.EXTERIOR, PaintCategory.WALL_PAINT, "wall", "Exterior Wall Paint",
        ("Sherwin-Williams", "Benjamin Moore", "Behr"),
        ("Duration, $78, 350", "Aura Exterior, $85, 400", "Marquee, $65, 380"),
    ),
    (
        ProjectType.EXTERIOR, PaintCategory.TRIM_PAINT, "trim", "Exterior Trim Paint",
        ("Benjamin Moore", "Sherwin-Williams", "PPG"),
        ("Advance Exterior, $82, 300", "ProClassic, $75, 320", "Manor Hall, $70, 340"),
    ),
]


def product_path(project_type: ProjectType, category: PaintCategory) -> str:
    return f"setup.products.{project_type.value}.{category.value}"


def _services(state: State) -> str | None:
    return get_path(state, "setup.service_types")


def _exterior_only(state: State) -> bool:
    return _services(state) == ProjectType.EXTERIOR.value


def _interior_only(state: State) -> bool:
    return _services(state) == ProjectType.INTERIOR.value


def _no_tax(state: State) -> bool:
    rate = get_path(state, "setup.tax_rate")
    return rate is None or Decimal(str(rate)) == 0


def _skipped(value: Any, state: State) -> bool:
    return value is None


def _product_steps() -> list[Step]:
    steps: list[Step] = []
    for index, (project_type, category, token, label, brands, details) in enumerate(_PRODUCT_SECTIONS):
        section = f"{project_type.value}_{token}"
        following = (
            f"{_PRODUCT_SECTIONS[index + 1][0].value}_{_PRODUCT_SECTIONS[index + 1][2]}_brand"
            if index + 1 < len(_PRODUCT_SECTIONS)
            else "labor_wall_rate"
        )
        path = product_path(project_type, category)
        skip = _exterior_only if project_type == ProjectType.INTERIOR else _interior_only
        key = path.replace(".", "_")

        steps.append(Step(
            id=f"{section}_brand",
            prompt=(
                f"**{label}**: What brand do you typically use? "
                f"(e.g., {', '.join(brands)}; say \"skip\" if you don't use one)"
            ),
            field=f"{path}.supplier",
            default_next=f"{section}_details",
            section=section,
            branches=(Branch(following, _skipped),),
            skip_if=skip,
            optional=True,
            suggestions=brands,
        ))
        steps.append(Step(
            id=f"{section}_details",
            prompt=(
                f"Got it! For {{{key}_supplier}} {label.lower()}:\n"
                "- What's the product name?\n"
                "- Cost per gallon?\n"
                "- Spread rate (sqft/gallon)?\n\n"
                f"You can answer like: \"{details[0]}\""
            ),
            expected_type=ExpectedType.COMPOUND,
            field=path,
            default_next=following,
            section=section,
            schema=PRODUCT_SCHEMA,
            skip_if=skip,
            suggestions=details,
        ))
    return steps


_STEPS: list[Step] = [
    Step(
        id="owner_name",
        prompt=(
            "Welcome! I'll help you set up your painting business profile. This will take "
            "about 5-10 minutes and will help you create accurate quotes quickly.\n\n"
            "First, what's your name?"
        ),
        field="setup.owner_name",
        default_next="business_name",
        section="business",
        parser=parse_owner_name,
        reprompt="I didn't catch your name. What should I call you?",
    ),
    Step(
        id="business_name",
        prompt="Nice to meet you, {setup_owner_name}! What's the name of your painting business?",
        field="setup.business_name",
        default_next="business_address",
        section="business",
    ),
    Step(
        id="business_address",
        prompt=(
            "Great! {setup_business_name} sounds professional. "
            "What's your business address? (This will appear on your quotes)"
        ),
        field="setup.business_address",
        default_next="service_types",
        section="business",
    ),
    Step(
        id="service_types",
        prompt="Do you paint interiors, exteriors, or both?",
        field="setup.service_types",
        default_next="interior_primer_brand",
        section="service",
        choices=SERVICE_CHOICES,
        branches=(
            Branch("exterior_primer_brand", lambda value, state: value == ProjectType.EXTERIOR.value),
        ),
        suggestions=("Interior", "Exterior", "Both"),
        reprompt="Please answer interior, exterior, or both.",
    ),
    *_product_steps(),
    Step(
        id="labor_wall_rate",
        prompt="Now let's set up your **rates**. What do you charge per square foot for wall painting?",
        expected_type=ExpectedType.NUMBER,
        field="setup.labor.walls",
        default_next="labor_ceiling_rate",
        section="labor",
        suggestions=("$1.50", "$1.75", "$2.00"),
    ),
    Step(
        id="labor_ceiling_rate",
        prompt="What do you charge per square foot for **ceiling painting**?",
        expected_type=ExpectedType.NUMBER,
        field="setup.labor.ceilings",
        default_next="labor_trim_rate",
        section="labor",
        skip_if=_exterior_only,
        suggestions=("$1.25", "$1.50", "$1.75"),
    ),
    Step(
        id="labor_trim_rate",
        prompt="And per square foot for **trim**?",
        expected_type=ExpectedType.NUMBER,
        field="setup.labor.trim",
        default_next="labor_door_rate",
        section="labor",
        suggestions=("$2.50", "$3.00", "$4.00"),
    ),
    Step(
        id="labor_door_rate",
        prompt="What do you charge per **door** (painting both sides)?",
        expected_type=ExpectedType.NUMBER,
        field="setup.labor.door",
        default_next="labor_window_rate",
        section="labor",
        optional=True,
        suggestions=("$125", "$150", "$175"),
    ),
    Step(
        id="labor_window_rate",
        prompt="What do you charge per **window** (painting trim and frame)?",
        expected_type=ExpectedType.NUMBER,
        field="setup.labor.window",
        default_next="markup_percentage",
        section="labor",
        optional=True,
        suggestions=("$75", "$100", "$125"),
    ),
    Step(
        id="markup_percentage",
        prompt="Almost done! What **markup percentage** do you typically apply to your quotes? (e.g., 45%)",
        expected_type=ExpectedType.PERCENTAGE,
        field="setup.markup_percentage",
        default_next="tax_rate",
        section="pricing",
        suggestions=("35%", "45%", "55%"),
    ),
    Step(
        id="tax_rate",
        prompt="Do you charge sales tax? Tell me the rate (e.g., 8.25%), or say \"none\".",
        expected_type=ExpectedType.PERCENTAGE,
        field="setup.tax_rate",
        default_next="tax_scope",
        section="pricing",
        optional=True,
        suggestions=("None", "6%", "8.25%"),
    ),
    Step(
        id="tax_scope",
        prompt="Is tax charged on materials only, or on the whole quote?",
        field="setup.tax_scope",
        default_next=COMPLETE,
        section="pricing",
        choices=TAX_SCOPE_CHOICES,
        skip_if=_no_tax,
        optional=True,
        suggestions=("Materials only", "Everything"),
        reprompt="Please answer \"materials only\" or \"everything\".",
    ),
]

SETUP_CATALOG = StepCatalog.build(
    "setup",
    _STEPS,
    completion_prompt=(
        "Excellent! Your setup is complete. Here's a summary:\n\n"
        "**Business**: {setup_business_name}\n"
        "**Owner**: {setup_owner_name}\n"
        "**Location**: {setup_business_address}\n"
        "**Markup**: {setup_markup_percentage}%\n\n"
        "You're all set to start creating professional quotes!"
    ),
    version=2,
)
