"""Pricing calculators — measurement validation and quote pricing."""

from paintquote.calculators.measurements import MAX_SURFACE_SQFT, validate_measurements
from paintquote.calculators.pricing import (
    FALLBACK_MARKUP,
    FALLBACK_RATES,
    calculate_quick_quote,
    calculate_quote,
    estimate_measurements,
    gallons_needed,
    recalculate_quote,
)

__all__ = [
    "FALLBACK_MARKUP",
    "FALLBACK_RATES",
    "MAX_SURFACE_SQFT",
    "calculate_quick_quote",
    "calculate_quote",
    "estimate_measurements",
    "gallons_needed",
    "recalculate_quote",
    "validate_measurements",
]
