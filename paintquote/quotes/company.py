"""Company profile: setup output and the directory of company defaults.

The setup wizard leaves its answers under ``setup.*`` in the session state;
this module turns them into CompanyDefaults for the calculator plus the
preference and paint product rows a persistence adapter writes.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from paintquote.conversation.catalogs.setup import product_path
from paintquote.conversation.steps import get_path
from paintquote.errors import CompanyNotFoundError
from paintquote.schemas.company import PaintProductRow, PreferenceRow, SetupResult
from paintquote.schemas.enums import PaintCategory, ProjectType
from paintquote.schemas.pricing import CompanyDefaults, MaterialCost

logger = logging.getLogger(__name__)

# Product slots in display order; exterior jobs have no ceiling paint
PRODUCT_SLOTS: list[tuple[ProjectType, PaintCategory]] = [
    (ProjectType.INTERIOR, PaintCategory.PRIMER),
    (ProjectType.INTERIOR, PaintCategory.WALL_PAINT),
    (ProjectType.INTERIOR, PaintCategory.CEILING_PAINT),
    (ProjectType.INTERIOR, PaintCategory.TRIM_PAINT),
    (ProjectType.EXTERIOR, PaintCategory.PRIMER),
    (ProjectType.EXTERIOR, PaintCategory.WALL_PAINT),
    (ProjectType.EXTERIOR, PaintCategory.TRIM_PAINT),
]

LABOR_KEYS = ("walls", "ceilings", "trim", "door", "window")


def to_decimal(value: Any) -> Decimal | None:
    """Coerce a stored answer (Decimal, number or numeric string) to Decimal."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def build_company_defaults(state: Mapping[str, Any]) -> CompanyDefaults:
    """CompanyDefaults from completed setup answers.

    Products without a positive spread rate or a cost are left out, so the
    calculator falls back to its quality-tier table for them.
    """
    materials: dict[ProjectType, dict[PaintCategory, MaterialCost]] = {}
    for project_type, category in PRODUCT_SLOTS:
        product = get_path(state, product_path(project_type, category)) or {}
        cost = to_decimal(product.get("cost_per_gallon"))
        spread = to_decimal(product.get("spread_rate"))
        if cost is None or cost < 0 or spread is None or spread <= 0:
            continue
        materials.setdefault(project_type, {})[category] = MaterialCost(
            cost_per_gallon=cost,
            spread_rate=spread,
            supplier=product.get("supplier"),
            product_name=product.get("product_name"),
        )

    tax_rate = to_decimal(get_path(state, "setup.tax_rate")) or Decimal("0")
    return CompanyDefaults(
        walls_rate=to_decimal(get_path(state, "setup.labor.walls")),
        ceilings_rate=to_decimal(get_path(state, "setup.labor.ceilings")),
        trim_rate=to_decimal(get_path(state, "setup.labor.trim")),
        markup_percentage=to_decimal(get_path(state, "setup.markup_percentage")),
        tax_rate=tax_rate,
        tax_on_materials_only=get_path(state, "setup.tax_scope") == "materials",
        materials=materials,
    )


def preference_rows(company_id: int, state: Mapping[str, Any]) -> list[PreferenceRow]:
    """Key/value preference rows; unanswered keys are omitted."""
    values: dict[str, Any] = {
        "business_name": get_path(state, "setup.business_name"),
        "owner_name": get_path(state, "setup.owner_name"),
        "business_address": get_path(state, "setup.business_address"),
        "service_types": get_path(state, "setup.service_types"),
        "markup_percentage": get_path(state, "setup.markup_percentage"),
        "tax_rate": get_path(state, "setup.tax_rate"),
        "tax_scope": get_path(state, "setup.tax_scope"),
    }
    labor = {
        key: str(rate)
        for key in LABOR_KEYS
        if (rate := to_decimal(get_path(state, f"setup.labor.{key}"))) is not None
    }
    if labor:
        values["labor_rates"] = json.dumps(labor)
    values["setup_completed"] = "1"

    return [
        PreferenceRow(company_id=company_id, preference_key=key, preference_value=str(value))
        for key, value in values.items()
        if value is not None and value != ""
    ]


def product_rows(company_id: int, state: Mapping[str, Any]) -> list[PaintProductRow]:
    """One paint product row per slot that got a product name."""
    rows: list[PaintProductRow] = []
    for project_type, category in PRODUCT_SLOTS:
        product = get_path(state, product_path(project_type, category)) or {}
        if not product.get("product_name"):
            continue
        rows.append(PaintProductRow(
            company_id=company_id,
            project_type=project_type,
            product_category=category,
            supplier=product.get("supplier"),
            product_name=product["product_name"],
            cost_per_gallon=to_decimal(product.get("cost_per_gallon")),
            spread_rate=to_decimal(product.get("spread_rate")),
        ))
    return rows


def build_setup_result(company_id: int, state: Mapping[str, Any]) -> SetupResult:
    return SetupResult(
        company_defaults=build_company_defaults(state),
        preferences=preference_rows(company_id, state),
        products=product_rows(company_id, state),
    )


class CompanyDirectory:
    """Company defaults by company id.

    In-memory; a persistence adapter can subclass and override the async
    methods.
    """

    def __init__(self, companies: Mapping[int, CompanyDefaults] | None = None) -> None:
        self._companies: dict[int, CompanyDefaults] = dict(companies or {})

    async def get_defaults(self, company_id: int) -> CompanyDefaults:
        """Raises CompanyNotFoundError for unknown companies."""
        defaults = self._companies.get(company_id)
        if defaults is None:
            raise CompanyNotFoundError("Company not found", {"company_id": company_id})
        return defaults

    async def find_defaults(self, company_id: int) -> CompanyDefaults | None:
        return self._companies.get(company_id)

    async def save_defaults(self, company_id: int, defaults: CompanyDefaults) -> None:
        self._companies[company_id] = defaults
        logger.info("Saved company defaults for company %s", company_id)
