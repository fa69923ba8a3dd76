"""Pydantic schemas for surface measurements and their validation result.

Pure data classes — the sanity rules live in calculators.measurements.
Areas are deliberately not constrained here so that bad input reaches the
validator and comes back as a descriptive error instead of a parse failure.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from paintquote.schemas.enums import RoomType, Surface


class RoomMeasurement(BaseModel):
    """Square footage of one room, per surface."""

    name: str
    type: RoomType = RoomType.OTHER
    walls_sqft: Decimal = Decimal("0")
    ceilings_sqft: Decimal = Decimal("0")
    trim_sqft: Decimal = Decimal("0")
    ceiling_height: Decimal | None = None
    doors: int | None = None
    windows: int | None = None
    notes: str | None = None

    def sqft(self, surface: Surface) -> Decimal:
        return getattr(self, f"{surface.value}_sqft")


class Measurements(BaseModel):
    """Project totals plus the optional per-room detail they came from."""

    total_walls_sqft: Decimal = Decimal("0")
    total_ceilings_sqft: Decimal = Decimal("0")
    total_trim_sqft: Decimal = Decimal("0")
    rooms: list[RoomMeasurement] = Field(default_factory=list)

    def sqft(self, surface: Surface) -> Decimal:
        """Total square footage for one surface category."""
        return getattr(self, f"total_{surface.value}_sqft")

    @property
    def has_area(self) -> bool:
        """True if at least one surface category is non-zero."""
        return any(self.sqft(s) > 0 for s in Surface)

    def room_sums(self) -> dict[Surface, Decimal]:
        return {
            s: sum((room.sqft(s) for room in self.rooms), start=Decimal("0"))
            for s in Surface
        }

    @classmethod
    def from_rooms(cls, rooms: list[RoomMeasurement]) -> Measurements:
        """Build totals by summing the rooms."""
        instance = cls(rooms=list(rooms))
        sums = instance.room_sums()
        return cls(
            total_walls_sqft=sums[Surface.WALLS],
            total_ceilings_sqft=sums[Surface.CEILINGS],
            total_trim_sqft=sums[Surface.TRIM],
            rooms=list(rooms),
        )

    @classmethod
    def single_area(
        cls,
        walls: Decimal = Decimal("0"),
        ceilings: Decimal = Decimal("0"),
        trim: Decimal = Decimal("0"),
        name: str = "Main Area",
    ) -> Measurements:
        """Totals-only input, recorded as one catch-all room."""
        return cls(
            total_walls_sqft=walls,
            total_ceilings_sqft=ceilings,
            total_trim_sqft=trim,
            rooms=[
                RoomMeasurement(
                    name=name,
                    type=RoomType.OTHER,
                    walls_sqft=walls,
                    ceilings_sqft=ceilings,
                    trim_sqft=trim,
                )
            ],
        )


class FieldIssue(BaseModel):
    """One validation finding, tied to the field path that caused it."""

    field: str
    message: str


class ValidationResult(BaseModel):
    """Outcome of validating a Measurements object."""

    is_valid: bool
    errors: list[FieldIssue] = Field(default_factory=list)
    warnings: list[FieldIssue] = Field(default_factory=list)
