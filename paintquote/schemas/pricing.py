"""Pydantic schemas for pricing inputs and the calculated breakdown.

Pure data classes — no business logic. Consumed and produced by
calculators.pricing.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from paintquote.schemas.enums import PaintCategory, PaintQuality, ProjectType


class PaintProduct(BaseModel):
    """A specific paint product chosen for one category."""

    category: PaintCategory
    supplier: str = ""
    product_name: str = ""
    cost_per_gallon: Decimal
    spread_rate: Decimal = Field(default=Decimal("350"), gt=0, description="Coverage in sqft per gallon")
    sheen: str | None = None
    quality: PaintQuality | None = None


class ProductSelection(BaseModel):
    """Paint choices for a quote. Missing products fall back to company defaults."""

    paint_quality: PaintQuality = PaintQuality.BETTER
    primer: PaintProduct | None = None
    wall_paint: PaintProduct | None = None
    ceiling_paint: PaintProduct | None = None
    trim_paint: PaintProduct | None = None

    def product_for(self, category: PaintCategory) -> PaintProduct | None:
        return getattr(self, category.value)


class MaterialCost(BaseModel):
    """Company default cost for one paint category."""

    cost_per_gallon: Decimal = Field(ge=0)
    spread_rate: Decimal = Field(gt=0)
    supplier: str | None = None
    product_name: str | None = None


class CompanyDefaults(BaseModel):
    """Per-company pricing configuration, owned by the setup/settings flows.

    Rates left as None fall back to the calculator's documented constants.
    """

    walls_rate: Decimal | None = None
    ceilings_rate: Decimal | None = None
    trim_rate: Decimal | None = None
    markup_percentage: Decimal | None = None
    tax_rate: Decimal = Decimal("0")
    tax_on_materials_only: bool = False
    sundries_percentage: Decimal = Decimal("12")
    materials: dict[ProjectType, dict[PaintCategory, MaterialCost]] = Field(default_factory=dict)

    def material_for(self, project_type: ProjectType, category: PaintCategory) -> MaterialCost | None:
        """Look up a default material; mixed projects use interior products."""
        key = ProjectType.INTERIOR if project_type == ProjectType.BOTH else project_type
        return self.materials.get(key, {}).get(category)


class RateOverrides(BaseModel):
    """Explicit per-quote rates that win over company defaults."""

    walls_rate: Decimal | None = None
    ceilings_rate: Decimal | None = None
    trim_rate: Decimal | None = None
    markup_percentage: Decimal | None = None


class CostBreakdown(BaseModel):
    walls_cost: Decimal
    ceilings_cost: Decimal
    trim_cost: Decimal
    sundries: Decimal
    profit: Decimal


class PricingBreakdown(BaseModel):
    """Itemized price of a quote. Derived, never persisted on its own.

    Invariants: final_price = subtotal + markup_amount + tax_amount,
    subtotal = total_material_cost + total_labor_cost.
    """

    walls_rate: Decimal
    ceilings_rate: Decimal
    trim_rate: Decimal
    total_material_cost: Decimal
    total_labor_cost: Decimal
    subtotal: Decimal
    markup_percentage: Decimal
    markup_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    final_price: Decimal
    breakdown: CostBreakdown
    gallons: dict[str, int] = Field(default_factory=dict)
    fallbacks_applied: list[str] = Field(default_factory=list)
