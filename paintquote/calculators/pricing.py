"""Quote pricing calculator.

Pure Python, Decimal arithmetic, no I/O. Implements:
- Category price: sqft × customer-facing $/sqft rate per surface
- Materials: whole gallons per surface (ceil(sqft / spread rate)) × cost per gallon
- Labor: whatever remains of the category prices after materials
- Sundries: contingency on materials, reported but not billed
- Markup on the subtotal, tax on subtotal + markup (or materials only)

Rate resolution order: explicit override → company default → fallback
constant. Fallbacks are listed on the breakdown so callers can see them.

Money is rounded to cents once, when the breakdown is built; totals are
summed from the rounded parts so the invariants hold to the cent.
"""

from __future__ import annotations

import logging
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

from paintquote.errors import PricingInvariantError
from paintquote.schemas.enums import SURFACE_PAINT, PaintCategory, PaintQuality, ProjectType, Surface
from paintquote.schemas.measurements import Measurements, RoomMeasurement
from paintquote.schemas.pricing import (
    CompanyDefaults,
    CostBreakdown,
    PricingBreakdown,
    ProductSelection,
    RateOverrides,
)
from paintquote.schemas.quote import Quote

logger = logging.getLogger(__name__)

FALLBACK_RATES: dict[Surface, Decimal] = {
    Surface.WALLS: Decimal("3.00"),
    Surface.CEILINGS: Decimal("2.00"),
    Surface.TRIM: Decimal("5.00"),
}
FALLBACK_MARKUP = Decimal("45")
STANDARD_COVERAGE = Decimal("350")  # sqft per gallon

# Cost per gallon by quality tier when neither the quote nor the company names a product
DEFAULT_PAINT_COSTS: dict[PaintCategory, dict[PaintQuality, Decimal]] = {
    PaintCategory.PRIMER: {
        PaintQuality.GOOD: Decimal("25"),
        PaintQuality.BETTER: Decimal("30"),
        PaintQuality.BEST: Decimal("35"),
        PaintQuality.PREMIUM: Decimal("40"),
    },
    PaintCategory.WALL_PAINT: {
        PaintQuality.GOOD: Decimal("35"),
        PaintQuality.BETTER: Decimal("45"),
        PaintQuality.BEST: Decimal("60"),
        PaintQuality.PREMIUM: Decimal("75"),
    },
    PaintCategory.CEILING_PAINT: {
        PaintQuality.GOOD: Decimal("30"),
        PaintQuality.BETTER: Decimal("40"),
        PaintQuality.BEST: Decimal("55"),
        PaintQuality.PREMIUM: Decimal("70"),
    },
    PaintCategory.TRIM_PAINT: {
        PaintQuality.GOOD: Decimal("40"),
        PaintQuality.BETTER: Decimal("55"),
        PaintQuality.BEST: Decimal("70"),
        PaintQuality.PREMIUM: Decimal("85"),
    },
}

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _to_cents(value: Decimal) -> Decimal:
    """Round to 2 decimal places."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def gallons_needed(sqft: Decimal, spread_rate: Decimal) -> int:
    """Whole gallons to cover an area; partial gallons cannot be bought."""
    if sqft <= 0:
        return 0
    if spread_rate <= 0:
        msg = f"Spread rate must be positive, got {spread_rate}"
        raise PricingInvariantError(msg, {"spread_rate": str(spread_rate)})
    return int((sqft / spread_rate).to_integral_value(rounding=ROUND_CEILING))


def _resolve_rate(
    surface: Surface,
    overrides: RateOverrides | None,
    defaults: CompanyDefaults,
    fallbacks: list[str],
) -> Decimal:
    name = f"{surface.value}_rate"
    if overrides is not None and getattr(overrides, name) is not None:
        return getattr(overrides, name)
    if getattr(defaults, name) is not None:
        return getattr(defaults, name)
    fallbacks.append(name)
    return FALLBACK_RATES[surface]


def _paint_source(
    category: PaintCategory,
    products: ProductSelection,
    defaults: CompanyDefaults,
    project_type: ProjectType,
) -> tuple[Decimal, Decimal]:
    """(cost_per_gallon, spread_rate) for one paint category."""
    product = products.product_for(category)
    if product is not None:
        return product.cost_per_gallon, product.spread_rate
    material = defaults.material_for(project_type, category)
    if material is not None:
        return material.cost_per_gallon, material.spread_rate
    return DEFAULT_PAINT_COSTS[category][products.paint_quality], STANDARD_COVERAGE


def _uses_primer(products: ProductSelection, defaults: CompanyDefaults, project_type: ProjectType) -> bool:
    return products.primer is not None or defaults.material_for(project_type, PaintCategory.PRIMER) is not None


def calculate_quote(
    measurements: Measurements,
    products: ProductSelection | None = None,
    company_defaults: CompanyDefaults | None = None,
    *,
    overrides: RateOverrides | None = None,
    project_type: ProjectType = ProjectType.INTERIOR,
) -> PricingBreakdown:
    """Price a quote.

    Args:
        measurements: Validated surface totals.
        products: Paint selections; defaults to "better" quality with no overrides.
        company_defaults: The company's rates and material costs.
        overrides: Per-quote rates that win over company defaults.
        project_type: Selects interior or exterior default materials.

    Returns:
        PricingBreakdown with every monetary field rounded to cents.

    Raises:
        PricingInvariantError: If inputs would produce a negative cost or price.
    """
    products = products or ProductSelection()
    defaults = company_defaults or CompanyDefaults()
    fallbacks: list[str] = []

    rates = {s: _resolve_rate(s, overrides, defaults, fallbacks) for s in Surface}

    if overrides is not None and overrides.markup_percentage is not None:
        markup_percentage = overrides.markup_percentage
    elif defaults.markup_percentage is not None:
        markup_percentage = defaults.markup_percentage
    else:
        fallbacks.append("markup_percentage")
        markup_percentage = FALLBACK_MARKUP

    _require_non_negative({
        **{f"{s.value}_rate": rates[s] for s in Surface},
        **{f"total_{s.value}_sqft": measurements.sqft(s) for s in Surface},
        "markup_percentage": markup_percentage,
        "tax_rate": defaults.tax_rate,
        "sundries_percentage": defaults.sundries_percentage,
    })

    prices = {s: measurements.sqft(s) * rates[s] for s in Surface}

    gallons: dict[str, int] = {}
    material = _ZERO
    for surface in Surface:
        cost_per_gallon, spread_rate = _paint_source(SURFACE_PAINT[surface], products, defaults, project_type)
        needed = gallons_needed(measurements.sqft(surface), spread_rate)
        gallons[surface.value] = needed
        material += needed * cost_per_gallon

    if _uses_primer(products, defaults, project_type):
        cost_per_gallon, spread_rate = _paint_source(PaintCategory.PRIMER, products, defaults, project_type)
        primed_area = measurements.total_walls_sqft + measurements.total_ceilings_sqft
        needed = gallons_needed(primed_area, spread_rate)
        gallons["primer"] = needed
        material += needed * cost_per_gallon

    price_total = sum(prices.values(), start=_ZERO)
    if price_total < material:
        msg = "Material cost exceeds the customer price; check the company rates and paint costs"
        raise PricingInvariantError(msg, {
            "category_price": str(_to_cents(price_total)),
            "material_cost": str(_to_cents(material)),
        })

    total_material_cost = _to_cents(material)
    subtotal = _to_cents(price_total)
    total_labor_cost = subtotal - total_material_cost
    markup_amount = _to_cents(subtotal * markup_percentage / _HUNDRED)

    taxable = total_material_cost if defaults.tax_on_materials_only else subtotal + markup_amount
    tax_amount = _to_cents(taxable * defaults.tax_rate / _HUNDRED)
    final_price = subtotal + markup_amount + tax_amount

    if fallbacks:
        logger.info("Pricing used fallback constants for: %s", ", ".join(fallbacks))

    return PricingBreakdown(
        walls_rate=rates[Surface.WALLS],
        ceilings_rate=rates[Surface.CEILINGS],
        trim_rate=rates[Surface.TRIM],
        total_material_cost=total_material_cost,
        total_labor_cost=total_labor_cost,
        subtotal=subtotal,
        markup_percentage=markup_percentage,
        markup_amount=markup_amount,
        tax_rate=defaults.tax_rate,
        tax_amount=tax_amount,
        final_price=final_price,
        breakdown=CostBreakdown(
            walls_cost=_to_cents(prices[Surface.WALLS]),
            ceilings_cost=_to_cents(prices[Surface.CEILINGS]),
            trim_cost=_to_cents(prices[Surface.TRIM]),
            sundries=_to_cents(material * defaults.sundries_percentage / _HUNDRED),
            profit=final_price - subtotal,
        ),
        gallons=gallons,
        fallbacks_applied=fallbacks,
    )


def _require_non_negative(values: dict[str, Decimal]) -> None:
    negative = {name: str(value) for name, value in values.items() if value < 0}
    if negative:
        msg = f"Negative pricing inputs: {', '.join(sorted(negative))}"
        raise PricingInvariantError(msg, negative)


def estimate_measurements(total_sqft: Decimal, project_type: ProjectType = ProjectType.INTERIOR) -> Measurements:
    """Estimate surface areas from a floor area, for quick quotes.

    Interior: walls 2.5×, ceilings 1×, trim 0.5× floor area.
    Exterior: walls 1.8×, no ceilings, trim 0.3× floor area.
    """
    if project_type == ProjectType.EXTERIOR:
        walls = (total_sqft * Decimal("1.8")).to_integral_value(rounding=ROUND_HALF_UP)
        ceilings = _ZERO
        trim = (total_sqft * Decimal("0.3")).to_integral_value(rounding=ROUND_HALF_UP)
    else:
        walls = (total_sqft * Decimal("2.5")).to_integral_value(rounding=ROUND_HALF_UP)
        ceilings = total_sqft
        trim = (total_sqft * Decimal("0.5")).to_integral_value(rounding=ROUND_HALF_UP)

    return Measurements(
        total_walls_sqft=walls,
        total_ceilings_sqft=ceilings,
        total_trim_sqft=trim,
        rooms=[RoomMeasurement(name="Estimated Area", walls_sqft=walls, ceilings_sqft=ceilings, trim_sqft=trim)],
    )


def calculate_quick_quote(
    total_sqft: Decimal,
    paint_quality: PaintQuality,
    company_defaults: CompanyDefaults,
    project_type: ProjectType = ProjectType.INTERIOR,
) -> PricingBreakdown:
    """Price a project from its floor area alone."""
    return calculate_quote(
        estimate_measurements(total_sqft, project_type),
        ProductSelection(paint_quality=paint_quality),
        company_defaults,
        project_type=project_type,
    )


def recalculate_quote(
    quote: Quote,
    company_defaults: CompanyDefaults | None = None,
    *,
    measurements: Measurements | None = None,
    products: ProductSelection | None = None,
    rate_overrides: RateOverrides | None = None,
    markup_override: Decimal | None = None,
) -> PricingBreakdown:
    """Reprice an existing quote after an explicit edit.

    The quote's own rates, markup and tax rate act as the defaults so an edit
    to measurements does not silently pick up newer company pricing.
    """
    base = company_defaults or CompanyDefaults()
    defaults = base.model_copy(update={
        "walls_rate": quote.pricing.walls_rate,
        "ceilings_rate": quote.pricing.ceilings_rate,
        "trim_rate": quote.pricing.trim_rate,
        "markup_percentage": quote.pricing.markup_percentage,
        "tax_rate": quote.pricing.tax_rate,
    })
    overrides = rate_overrides or RateOverrides()
    if markup_override is not None:
        overrides = overrides.model_copy(update={"markup_percentage": markup_override})

    return calculate_quote(
        measurements or quote.measurements,
        products or quote.products,
        defaults,
        overrides=overrides,
        project_type=quote.project.type,
    )
