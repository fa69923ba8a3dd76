"""Tests for the quote pricing calculator.

Tests cover:
- The reference scenario (1000 sqft walls at $3, $58 paint at 350 sqft/gal)
- Rate resolution: override → company default → fallback constant
- Paint source resolution and primer handling
- Tax on subtotal+markup vs materials only
- Invariants: totals add up to the cent, determinism, monotonicity
- Invariant violations raise PricingInvariantError
- Quick quotes and repricing
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from paintquote.calculators.pricing import (
    FALLBACK_MARKUP,
    calculate_quick_quote,
    calculate_quote,
    estimate_measurements,
    gallons_needed,
    recalculate_quote,
)
from paintquote.errors import PricingInvariantError
from paintquote.schemas.enums import PaintCategory, PaintQuality, ProjectType
from paintquote.schemas.measurements import Measurements
from paintquote.schemas.pricing import (
    CompanyDefaults,
    MaterialCost,
    PaintProduct,
    ProductSelection,
    RateOverrides,
)
from paintquote.schemas.quote import CustomerInfo, ProjectDetails, Quote, QuoteMetadata


def _defaults(**overrides) -> CompanyDefaults:
    values = {
        "walls_rate": Decimal("3.00"),
        "ceilings_rate": Decimal("2.00"),
        "trim_rate": Decimal("5.00"),
        "markup_percentage": Decimal("45"),
    }
    values.update(overrides)
    return CompanyDefaults(**values)


def _wall_paint(cost: str = "58", spread: str = "350") -> ProductSelection:
    return ProductSelection(
        wall_paint=PaintProduct(
            category=PaintCategory.WALL_PAINT,
            supplier="Sherwin-Williams",
            product_name="ProClassic",
            cost_per_gallon=Decimal(cost),
            spread_rate=Decimal(spread),
        ),
    )


def _assert_invariants(result) -> None:
    assert result.final_price == result.subtotal + result.markup_amount + result.tax_amount
    assert result.subtotal == result.total_material_cost + result.total_labor_cost
    assert result.breakdown.profit == result.final_price - result.subtotal


class TestReferenceScenario:
    """1000 sqft walls @ $3.00, 350 sqft/gal at $58, 45% markup, no tax."""

    def test_breakdown(self) -> None:
        result = calculate_quote(Measurements.single_area(walls=Decimal("1000")), _wall_paint(), _defaults())

        assert result.gallons["walls"] == 3
        assert result.total_material_cost == Decimal("174.00")
        assert result.total_labor_cost == Decimal("2826.00")
        assert result.subtotal == Decimal("3000.00")
        assert result.markup_amount == Decimal("1350.00")
        assert result.tax_amount == Decimal("0.00")
        assert result.final_price == Decimal("4350.00")
        assert result.breakdown.walls_cost == Decimal("3000.00")
        assert result.breakdown.ceilings_cost == Decimal("0.00")
        assert result.fallbacks_applied == []
        _assert_invariants(result)

    def test_sundries_reported_not_billed(self) -> None:
        result = calculate_quote(Measurements.single_area(walls=Decimal("1000")), _wall_paint(), _defaults())
        # 12% of $174
        assert result.breakdown.sundries == Decimal("20.88")
        assert result.subtotal == Decimal("3000.00")


class TestRateResolution:
    def test_override_wins_over_default(self) -> None:
        result = calculate_quote(
            Measurements.single_area(walls=Decimal("1000")),
            _wall_paint(),
            _defaults(),
            overrides=RateOverrides(walls_rate=Decimal("4.00"), markup_percentage=Decimal("10")),
        )
        assert result.walls_rate == Decimal("4.00")
        assert result.subtotal == Decimal("4000.00")
        assert result.markup_amount == Decimal("400.00")

    def test_fallbacks_listed(self) -> None:
        result = calculate_quote(Measurements.single_area(walls=Decimal("1000")), _wall_paint(), CompanyDefaults())
        assert result.walls_rate == Decimal("3.00")
        assert result.ceilings_rate == Decimal("2.00")
        assert result.trim_rate == Decimal("5.00")
        assert result.markup_percentage == FALLBACK_MARKUP
        assert set(result.fallbacks_applied) == {
            "walls_rate",
            "ceilings_rate",
            "trim_rate",
            "markup_percentage",
        }

    def test_no_defaults_at_all(self) -> None:
        """Missing products and company defaults still price via the tier table."""
        result = calculate_quote(Measurements.single_area(walls=Decimal("700")))
        # better-tier wall paint: $45/gal at 350 sqft/gal → 2 gallons
        assert result.total_material_cost == Decimal("90.00")
        _assert_invariants(result)


class TestPaintSources:
    def test_company_material_used_without_product(self) -> None:
        defaults = _defaults(materials={
            ProjectType.INTERIOR: {
                PaintCategory.WALL_PAINT: MaterialCost(cost_per_gallon=Decimal("40"), spread_rate=Decimal("400")),
            },
        })
        result = calculate_quote(Measurements.single_area(walls=Decimal("1000")), None, defaults)
        assert result.gallons["walls"] == 3
        assert result.total_material_cost == Decimal("120.00")

    def test_both_uses_interior_materials(self) -> None:
        defaults = _defaults(materials={
            ProjectType.INTERIOR: {
                PaintCategory.WALL_PAINT: MaterialCost(cost_per_gallon=Decimal("40"), spread_rate=Decimal("400")),
            },
        })
        result = calculate_quote(
            Measurements.single_area(walls=Decimal("1000")),
            None,
            defaults,
            project_type=ProjectType.BOTH,
        )
        assert result.total_material_cost == Decimal("120.00")

    def test_quality_tier_changes_material_cost(self) -> None:
        measurements = Measurements.single_area(walls=Decimal("1000"))
        good = calculate_quote(measurements, ProductSelection(paint_quality=PaintQuality.GOOD), _defaults())
        premium = calculate_quote(measurements, ProductSelection(paint_quality=PaintQuality.PREMIUM), _defaults())
        assert good.total_material_cost < premium.total_material_cost
        assert good.subtotal == premium.subtotal

    def test_primer_only_when_configured(self) -> None:
        measurements = Measurements.single_area(walls=Decimal("500"), ceilings=Decimal("200"))
        without = calculate_quote(measurements, _wall_paint(), _defaults())
        assert "primer" not in without.gallons

        products = _wall_paint().model_copy(update={
            "primer": PaintProduct(category=PaintCategory.PRIMER, cost_per_gallon=Decimal("28"), spread_rate=Decimal("400")),
        })
        with_primer = calculate_quote(measurements, products, _defaults())
        # walls + ceilings = 700 sqft at 400 sqft/gal
        assert with_primer.gallons["primer"] == 2
        assert with_primer.total_material_cost == without.total_material_cost + Decimal("56.00")


class TestTax:
    def test_tax_on_subtotal_plus_markup(self) -> None:
        result = calculate_quote(
            Measurements.single_area(walls=Decimal("1000")),
            _wall_paint(),
            _defaults(tax_rate=Decimal("10")),
        )
        assert result.tax_amount == Decimal("435.00")
        assert result.final_price == Decimal("4785.00")
        _assert_invariants(result)

    def test_tax_on_materials_only(self) -> None:
        result = calculate_quote(
            Measurements.single_area(walls=Decimal("1000")),
            _wall_paint(),
            _defaults(tax_rate=Decimal("10"), tax_on_materials_only=True),
        )
        assert result.tax_amount == Decimal("17.40")
        assert result.final_price == Decimal("4367.40")


class TestInvariants:
    def test_zero_area_zero_cost(self) -> None:
        result = calculate_quote(Measurements(), _wall_paint(), _defaults())
        assert result.final_price == Decimal("0.00")
        assert result.gallons == {"walls": 0, "ceilings": 0, "trim": 0}

    def test_rounding_holds_to_the_cent(self) -> None:
        result = calculate_quote(
            Measurements.single_area(walls=Decimal("333.33"), ceilings=Decimal("127.5"), trim=Decimal("41.7")),
            _wall_paint(),
            _defaults(markup_percentage=Decimal("37.5"), tax_rate=Decimal("8.25")),
        )
        for value in (result.subtotal, result.markup_amount, result.tax_amount, result.final_price):
            assert value == value.quantize(Decimal("0.01"))
        _assert_invariants(result)

    def test_deterministic(self) -> None:
        measurements = Measurements.single_area(walls=Decimal("812"), trim=Decimal("90"))
        first = calculate_quote(measurements, _wall_paint(), _defaults(tax_rate=Decimal("6")))
        second = calculate_quote(measurements, _wall_paint(), _defaults(tax_rate=Decimal("6")))
        assert first == second

    @pytest.mark.parametrize("extra", ["1", "10", "349", "350", "1000"])
    def test_monotonic_in_square_footage(self, extra: str) -> None:
        base = calculate_quote(Measurements.single_area(walls=Decimal("1000")), _wall_paint(), _defaults())
        more = calculate_quote(
            Measurements.single_area(walls=Decimal("1000") + Decimal(extra)),
            _wall_paint(),
            _defaults(),
        )
        assert more.final_price >= base.final_price

    def test_negative_rate_rejected(self) -> None:
        with pytest.raises(PricingInvariantError):
            calculate_quote(
                Measurements.single_area(walls=Decimal("100")),
                _wall_paint(),
                _defaults(walls_rate=Decimal("-1")),
            )

    def test_negative_area_rejected(self) -> None:
        with pytest.raises(PricingInvariantError):
            calculate_quote(Measurements(total_walls_sqft=Decimal("-5")), _wall_paint(), _defaults())

    def test_materials_above_price_rejected(self) -> None:
        """$0.10/sqft cannot cover $58 paint: labor would go negative."""
        with pytest.raises(PricingInvariantError) as exc_info:
            calculate_quote(
                Measurements.single_area(walls=Decimal("1000")),
                _wall_paint(),
                _defaults(walls_rate=Decimal("0.10")),
            )
        assert exc_info.value.status_code == 500
        assert "material_cost" in exc_info.value.details


class TestGallonsNeeded:
    def test_rounds_up(self) -> None:
        assert gallons_needed(Decimal("351"), Decimal("350")) == 2

    def test_exact(self) -> None:
        assert gallons_needed(Decimal("700"), Decimal("350")) == 2

    def test_zero_area(self) -> None:
        assert gallons_needed(Decimal("0"), Decimal("350")) == 0

    def test_non_positive_spread_rate(self) -> None:
        with pytest.raises(PricingInvariantError):
            gallons_needed(Decimal("100"), Decimal("0"))


class TestQuickQuote:
    def test_interior_estimate(self) -> None:
        measurements = estimate_measurements(Decimal("1000"))
        assert measurements.total_walls_sqft == Decimal("2500")
        assert measurements.total_ceilings_sqft == Decimal("1000")
        assert measurements.total_trim_sqft == Decimal("500")

    def test_exterior_estimate(self) -> None:
        measurements = estimate_measurements(Decimal("1000"), ProjectType.EXTERIOR)
        assert measurements.total_walls_sqft == Decimal("1800")
        assert measurements.total_ceilings_sqft == Decimal("0")
        assert measurements.total_trim_sqft == Decimal("300")

    def test_quick_quote_prices_estimate(self) -> None:
        result = calculate_quick_quote(Decimal("1000"), PaintQuality.BETTER, _defaults())
        # 2500×3 + 1000×2 + 500×5
        assert result.subtotal == Decimal("12000.00")
        _assert_invariants(result)


class TestRecalculate:
    def _quote(self) -> Quote:
        measurements = Measurements.single_area(walls=Decimal("1000"))
        now = datetime(2026, 1, 5, tzinfo=UTC)
        return Quote(
            customer=CustomerInfo(name="Jane Doe"),
            project=ProjectDetails(),
            measurements=measurements,
            products=_wall_paint(),
            pricing=calculate_quote(measurements, _wall_paint(), _defaults()),
            metadata=QuoteMetadata(quote_id="QUOTE-ABC123ABC123", company_id=1, created_at=now, updated_at=now),
        )

    def test_keeps_quote_rates_over_newer_company_rates(self) -> None:
        quote = self._quote()
        result = recalculate_quote(
            quote,
            _defaults(walls_rate=Decimal("9.00")),
            measurements=Measurements.single_area(walls=Decimal("2000")),
        )
        assert result.walls_rate == Decimal("3.00")
        assert result.subtotal == Decimal("6000.00")

    def test_markup_override(self) -> None:
        result = recalculate_quote(self._quote(), markup_override=Decimal("20"))
        assert result.markup_amount == Decimal("600.00")
        assert result.final_price == Decimal("3600.00")
