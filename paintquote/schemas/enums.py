"""Domain enums used across pydantic schemas and the intake catalogs.

All enums use str mixin for JSON serialization.
"""

from __future__ import annotations

from enum import Enum


class PaintQuality(str, Enum):
    """Paint quality tier — drives the fallback cost per gallon."""

    GOOD = "good"
    BETTER = "better"
    BEST = "best"
    PREMIUM = "premium"


class PaintCategory(str, Enum):
    """Paint product category, as stored in paint product rows."""

    PRIMER = "primer"
    WALL_PAINT = "wall_paint"
    CEILING_PAINT = "ceiling_paint"
    TRIM_PAINT = "trim_paint"


class ProjectType(str, Enum):
    """Where the work happens."""

    INTERIOR = "interior"
    EXTERIOR = "exterior"
    BOTH = "both"


class Surface(str, Enum):
    """Priced surface categories."""

    WALLS = "walls"
    CEILINGS = "ceilings"
    TRIM = "trim"


class RoomType(str, Enum):
    """Room category tag on a room measurement."""

    BEDROOM = "bedroom"
    BATHROOM = "bathroom"
    KITCHEN = "kitchen"
    LIVING = "living"
    DINING = "dining"
    HALLWAY = "hallway"
    OFFICE = "office"
    OTHER = "other"


class QuoteStatus(str, Enum):
    """Quote lifecycle status."""

    DRAFT = "draft"
    PENDING = "pending"
    SENT = "sent"
    APPROVED = "approved"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class CreatedBy(str, Enum):
    MANUAL = "manual"
    AI = "ai"
    IMPORT = "import"


class CreationMethod(str, Enum):
    CHAT = "chat"
    WIZARD = "wizard"
    QUICK = "quick"
    IMPORT = "import"


class IntakeFlow(str, Enum):
    """Which step catalog a conversation session walks."""

    QUOTE = "quote"
    SETUP = "setup"


class ExpectedType(str, Enum):
    """How a step parses the user's answer."""

    TEXT = "text"
    NUMBER = "number"
    PERCENTAGE = "percentage"
    COMPOUND = "compound"


# Which paint category prices which surface
SURFACE_PAINT: dict[Surface, PaintCategory] = {
    Surface.WALLS: PaintCategory.WALL_PAINT,
    Surface.CEILINGS: PaintCategory.CEILING_PAINT,
    Surface.TRIM: PaintCategory.TRIM_PAINT,
}
