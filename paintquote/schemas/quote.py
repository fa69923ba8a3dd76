"""Pydantic schemas for quotes and the requests that create or change them."""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from paintquote.schemas.enums import (
    CreatedBy,
    CreationMethod,
    PaintQuality,
    ProjectType,
    QuoteStatus,
    Surface,
)
from paintquote.schemas.measurements import FieldIssue, Measurements, RoomMeasurement
from paintquote.schemas.pricing import PricingBreakdown, ProductSelection, RateOverrides


class CustomerInfo(BaseModel):
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None


class ProjectDetails(BaseModel):
    type: ProjectType = ProjectType.INTERIOR
    surfaces: list[Surface] = Field(default_factory=list)
    description: str | None = None
    timeline: str | None = None
    special_requests: str | None = None


class QuoteMetadata(BaseModel):
    quote_id: str
    company_id: int
    status: QuoteStatus = QuoteStatus.DRAFT
    created_by: CreatedBy = CreatedBy.MANUAL
    ai_provider: str | None = None
    creation_method: CreationMethod = CreationMethod.QUICK
    conversation_summary: str | None = None
    created_at: datetime
    updated_at: datetime
    valid_until: datetime | None = None


class Quote(BaseModel):
    """A finished, priced quote — the record handed to persistence."""

    customer: CustomerInfo
    project: ProjectDetails
    measurements: Measurements
    products: ProductSelection
    pricing: PricingBreakdown
    metadata: QuoteMetadata

    def to_record(self) -> dict[str, Any]:
        """Flatten into the quotes table row shape."""
        return {
            "company_id": self.metadata.company_id,
            "quote_id": self.metadata.quote_id,
            "customer_name": self.customer.name,
            "customer_email": self.customer.email,
            "customer_phone": self.customer.phone,
            "address": self.customer.address,
            "project_type": self.project.type.value,
            "special_requests": self.project.special_requests,
            "walls_sqft": self.measurements.total_walls_sqft,
            "ceilings_sqft": self.measurements.total_ceilings_sqft,
            "trim_sqft": self.measurements.total_trim_sqft,
            "walls_rate": self.pricing.walls_rate,
            "ceilings_rate": self.pricing.ceilings_rate,
            "trim_rate": self.pricing.trim_rate,
            "total_materials": self.pricing.total_material_cost,
            "projected_labor": self.pricing.total_labor_cost,
            "markup_percentage": self.pricing.markup_percentage,
            "tax_amount": self.pricing.tax_amount,
            "final_price": self.pricing.final_price,
            "room_data": json.dumps(
                [room.model_dump(mode="json") for room in self.measurements.rooms]
            ),
            "conversation_summary": self.metadata.conversation_summary,
            "status": self.metadata.status.value,
            "created_at": self.metadata.created_at.isoformat(),
            "updated_at": self.metadata.updated_at.isoformat(),
        }


class MissingFields(BaseModel):
    """Returned instead of a Quote when intake data is not yet sufficient."""

    fields: list[str] = Field(default_factory=list)
    errors: list[FieldIssue] = Field(default_factory=list)


class CreateQuoteRequest(BaseModel):
    """Direct (form) quote creation payload."""

    model_config = ConfigDict(extra="ignore")

    company_id: int = Field(gt=0)
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: str | None = None
    customer_phone: str | None = None
    address: str | None = None
    project_type: ProjectType = ProjectType.INTERIOR

    # Simple totals, or detailed rooms
    walls_sqft: Decimal | None = None
    ceilings_sqft: Decimal | None = None
    trim_sqft: Decimal | None = None
    rooms: list[RoomMeasurement] | None = None

    paint_quality: PaintQuality = PaintQuality.BETTER
    products: ProductSelection | None = None
    markup_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    custom_rates: RateOverrides | None = None

    special_requests: str | None = None
    timeline: str | None = None
    creation_method: CreationMethod = CreationMethod.QUICK
    ai_provider: str | None = None
    conversation_summary: str | None = None


class UpdateQuoteRequest(BaseModel):
    """Explicit edit of an existing quote. Only provided fields change."""

    model_config = ConfigDict(extra="ignore")

    status: QuoteStatus | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    address: str | None = None
    special_requests: str | None = None
    timeline: str | None = None

    # Any of these triggers repricing
    measurements: Measurements | None = None
    products: ProductSelection | None = None
    rate_overrides: RateOverrides | None = None
    markup_percentage: Decimal | None = Field(default=None, ge=0, le=100)
