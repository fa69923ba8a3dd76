"""Pydantic schemas for the rows the setup wizard produces."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from paintquote.schemas.enums import PaintCategory, ProjectType
from paintquote.schemas.pricing import CompanyDefaults


class PreferenceRow(BaseModel):
    """One company_preferences row (key/value, upserted by key)."""

    company_id: int
    preference_key: str
    preference_value: str


class PaintProductRow(BaseModel):
    """One paint_products row."""

    company_id: int
    project_type: ProjectType
    product_category: PaintCategory
    supplier: str | None = None
    product_name: str
    cost_per_gallon: Decimal | None = None
    spread_rate: Decimal | None = None
    display_order: int = 1


class SetupResult(BaseModel):
    """Everything a completed setup conversation yields."""

    company_defaults: CompanyDefaults
    preferences: list[PreferenceRow] = Field(default_factory=list)
    products: list[PaintProductRow] = Field(default_factory=list)
