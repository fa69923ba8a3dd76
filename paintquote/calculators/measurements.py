"""Measurement sanity checks, run once before pricing.

Errors (quote cannot be priced):
  - negative area on any total or room surface
  - non-zero totals with no rooms recorded (ambiguous origin)
  - any single surface above MAX_SURFACE_SQFT

Warnings (reported, never auto-corrected):
  - room sums disagree with the explicit totals (explicit totals win)
  - unusually large or small totals
"""

from __future__ import annotations

from decimal import Decimal

from paintquote.schemas.enums import Surface
from paintquote.schemas.measurements import FieldIssue, Measurements, ValidationResult

MAX_SURFACE_SQFT = Decimal("50000")

# Totals beyond these are plausible but worth a second look
_LARGE_TOTALS: dict[Surface, Decimal] = {
    Surface.WALLS: Decimal("10000"),
    Surface.CEILINGS: Decimal("5000"),
    Surface.TRIM: Decimal("2000"),
}
_SMALL_WALLS = Decimal("50")
_SUM_TOLERANCE = Decimal("0.01")


def validate_measurements(measurements: Measurements) -> ValidationResult:
    """Check a Measurements object for structural sanity.

    Never raises for bad data and never mutates its input.
    """
    errors: list[FieldIssue] = []
    warnings: list[FieldIssue] = []

    for surface in Surface:
        field = f"total_{surface.value}_sqft"
        value = measurements.sqft(surface)
        if value < 0:
            errors.append(FieldIssue(field=field, message=f"{surface.value.capitalize()} square footage cannot be negative"))
        elif value > MAX_SURFACE_SQFT:
            errors.append(FieldIssue(
                field=field,
                message=f"{surface.value.capitalize()} square footage {value} exceeds the {MAX_SURFACE_SQFT} sqft limit",
            ))
        elif value > _LARGE_TOTALS[surface]:
            warnings.append(FieldIssue(field=field, message=f"{surface.value.capitalize()} square footage is unusually large"))

    if Decimal("0") < measurements.total_walls_sqft < _SMALL_WALLS:
        warnings.append(FieldIssue(field="total_walls_sqft", message="Walls square footage seems very small"))

    for index, room in enumerate(measurements.rooms):
        for surface in Surface:
            field = f"rooms[{index}].{surface.value}_sqft"
            value = room.sqft(surface)
            if value < 0:
                errors.append(FieldIssue(field=field, message=f"{room.name}: {surface.value} square footage cannot be negative"))
            elif value > MAX_SURFACE_SQFT:
                errors.append(FieldIssue(
                    field=field,
                    message=f"{room.name}: {surface.value} square footage {value} is not plausible for a single room",
                ))

    if not measurements.rooms:
        if measurements.has_area:
            errors.append(FieldIssue(
                field="rooms",
                message="Totals are set but no rooms were recorded; provide rooms or a single catch-all area",
            ))
    else:
        sums = measurements.room_sums()
        for surface in Surface:
            total = measurements.sqft(surface)
            if abs(sums[surface] - total) > _SUM_TOLERANCE:
                warnings.append(FieldIssue(
                    field=f"total_{surface.value}_sqft",
                    message=(
                        f"Room {surface.value} measurements add up to {sums[surface]} "
                        f"but the total is {total}; using the total"
                    ),
                ))

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
