"""Quote assembly: from intake state or a form request to a priced Quote.

Nothing here talks to storage. Callers hand finished quotes to their own
persistence (the API's quote sink).
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

from paintquote.calculators.measurements import validate_measurements
from paintquote.calculators.pricing import calculate_quote, recalculate_quote
from paintquote.config import settings
from paintquote.conversation.steps import get_path
from paintquote.errors import QuoteValidationError
from paintquote.quotes.company import to_decimal
from paintquote.schemas.enums import (
    CreatedBy,
    CreationMethod,
    PaintQuality,
    ProjectType,
    QuoteStatus,
    Surface,
)
from paintquote.schemas.measurements import FieldIssue, Measurements
from paintquote.schemas.pricing import CompanyDefaults, ProductSelection, RateOverrides
from paintquote.schemas.quote import (
    CreateQuoteRequest,
    CustomerInfo,
    MissingFields,
    ProjectDetails,
    Quote,
    QuoteMetadata,
    UpdateQuoteRequest,
)

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")

# Status lifecycle: {current: allowed next statuses}
ALLOWED_STATUS_TRANSITIONS: dict[QuoteStatus, set[QuoteStatus]] = {
    QuoteStatus.DRAFT: {QuoteStatus.PENDING, QuoteStatus.SENT, QuoteStatus.EXPIRED},
    QuoteStatus.PENDING: {QuoteStatus.DRAFT, QuoteStatus.SENT, QuoteStatus.EXPIRED},
    QuoteStatus.SENT: {QuoteStatus.APPROVED, QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.APPROVED: {QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.ACCEPTED: set(),
    QuoteStatus.REJECTED: set(),
    QuoteStatus.EXPIRED: set(),
}


def generate_quote_id() -> str:
    """Externally unique quote id, e.g. QUOTE-3F9A1C07B2D4."""
    return f"QUOTE-{uuid.uuid4().hex[:12].upper()}"


def _issues(result_errors: list[FieldIssue]) -> list[dict[str, str]]:
    return [issue.model_dump() for issue in result_errors]


def _metadata(
    company_id: int,
    now: datetime,
    *,
    created_by: CreatedBy,
    creation_method: CreationMethod,
    ai_provider: str | None,
    conversation_summary: str | None,
) -> QuoteMetadata:
    return QuoteMetadata(
        quote_id=generate_quote_id(),
        company_id=company_id,
        status=QuoteStatus.DRAFT,
        created_by=created_by,
        ai_provider=ai_provider,
        creation_method=creation_method,
        conversation_summary=conversation_summary,
        created_at=now,
        updated_at=now,
        valid_until=now + timedelta(days=settings.quotes.quote_valid_days),
    )


def _surfaces_in_scope(measurements: Measurements) -> list[Surface]:
    return [s for s in Surface if measurements.sqft(s) > 0]


# ── Conversational intake ────────────────────────────────────────────


def assemble(
    partial_state: Mapping[str, Any],
    company_defaults: CompanyDefaults | None,
    *,
    company_id: int,
    ai_provider: str | None = None,
    creation_method: CreationMethod = CreationMethod.CHAT,
    conversation_summary: str | None = None,
    now: datetime | None = None,
) -> Quote | MissingFields:
    """Turn completed quote chat state into a priced Quote.

    Needs a customer name and at least one non-zero surface area. Anything
    short of that, or measurements the validator rejects, comes back as
    MissingFields; a partial quote is never built.

    Raises:
        PricingInvariantError: If the company's pricing cannot produce a valid breakdown.
    """
    missing: list[str] = []
    errors: list[FieldIssue] = []

    name = get_path(partial_state, "customer.name")
    if not name:
        missing.append("customer.name")
        errors.append(FieldIssue(field="customer.name", message="Customer name is required"))

    areas = {
        surface: to_decimal(get_path(partial_state, f"measurements.{surface.value}_sqft")) or _ZERO
        for surface in Surface
    }
    if not any(value > 0 for value in areas.values()):
        missing.append("measurements.walls_sqft")
        errors.append(FieldIssue(
            field="measurements",
            message="At least one of walls, ceilings or trim square footage is required",
        ))

    if missing:
        return MissingFields(fields=missing, errors=errors)

    measurements = Measurements.single_area(areas[Surface.WALLS], areas[Surface.CEILINGS], areas[Surface.TRIM])
    validation = validate_measurements(measurements)
    if not validation.is_valid:
        return MissingFields(
            fields=[f"measurements.{issue.field.removeprefix('total_')}" for issue in validation.errors],
            errors=validation.errors,
        )
    for warning in validation.warnings:
        logger.info("Measurement warning for company %s: %s", company_id, warning.message)

    project_type = ProjectType(get_path(partial_state, "project.type") or ProjectType.INTERIOR.value)
    stated_surfaces = get_path(partial_state, "project.surfaces") or []
    surfaces = [Surface(s) for s in stated_surfaces] or _surfaces_in_scope(measurements)
    products = ProductSelection(
        paint_quality=PaintQuality(get_path(partial_state, "products.paint_quality") or PaintQuality.BETTER.value),
    )
    overrides = RateOverrides(markup_percentage=to_decimal(get_path(partial_state, "pricing.markup_percentage")))

    pricing = calculate_quote(measurements, products, company_defaults, overrides=overrides, project_type=project_type)

    now = now or datetime.now(UTC)
    quote = Quote(
        customer=CustomerInfo(
            name=name,
            email=get_path(partial_state, "customer.email"),
            phone=get_path(partial_state, "customer.phone"),
            address=get_path(partial_state, "customer.address"),
        ),
        project=ProjectDetails(type=project_type, surfaces=surfaces),
        measurements=measurements,
        products=products,
        pricing=pricing,
        metadata=_metadata(
            company_id,
            now,
            created_by=CreatedBy.AI,
            creation_method=creation_method,
            ai_provider=ai_provider,
            conversation_summary=conversation_summary,
        ),
    )
    logger.info(
        "Assembled quote %s for company %s: final=%s",
        quote.metadata.quote_id,
        company_id,
        pricing.final_price,
    )
    return quote


# ── Direct creation ──────────────────────────────────────────────────


def _request_measurements(request: CreateQuoteRequest) -> Measurements:
    """Rooms if given, with explicit totals winning over room sums."""
    if request.rooms:
        measurements = Measurements.from_rooms(request.rooms)
        explicit = {
            "total_walls_sqft": request.walls_sqft,
            "total_ceilings_sqft": request.ceilings_sqft,
            "total_trim_sqft": request.trim_sqft,
        }
        return measurements.model_copy(update={k: v for k, v in explicit.items() if v is not None})
    return Measurements.single_area(
        request.walls_sqft or _ZERO,
        request.ceilings_sqft or _ZERO,
        request.trim_sqft or _ZERO,
    )


def create_quote(
    request: CreateQuoteRequest,
    company_defaults: CompanyDefaults | None,
    *,
    now: datetime | None = None,
) -> Quote:
    """Price and build a quote from a form submission.

    Raises:
        QuoteValidationError: If there is no area to price or the measurements are invalid.
        PricingInvariantError: If the company's pricing cannot produce a valid breakdown.
    """
    measurements = _request_measurements(request)
    if not measurements.has_area:
        raise QuoteValidationError(
            "At least one of walls, ceilings or trim square footage is required",
            {"errors": [{"field": "measurements", "message": "No surface area provided"}]},
        )

    validation = validate_measurements(measurements)
    if not validation.is_valid:
        raise QuoteValidationError(
            "Invalid measurements",
            {"errors": _issues(validation.errors), "warnings": _issues(validation.warnings)},
        )

    products = request.products or ProductSelection(paint_quality=request.paint_quality)
    overrides = request.custom_rates or RateOverrides()
    if request.markup_percentage is not None:
        overrides = overrides.model_copy(update={"markup_percentage": request.markup_percentage})

    pricing = calculate_quote(
        measurements,
        products,
        company_defaults,
        overrides=overrides,
        project_type=request.project_type,
    )

    now = now or datetime.now(UTC)
    from_assistant = request.ai_provider is not None or request.creation_method == CreationMethod.CHAT
    quote = Quote(
        customer=CustomerInfo(
            name=request.customer_name,
            email=request.customer_email,
            phone=request.customer_phone,
            address=request.address,
        ),
        project=ProjectDetails(
            type=request.project_type,
            surfaces=_surfaces_in_scope(measurements),
            timeline=request.timeline,
            special_requests=request.special_requests,
        ),
        measurements=measurements,
        products=products,
        pricing=pricing,
        metadata=_metadata(
            request.company_id,
            now,
            created_by=CreatedBy.AI if from_assistant else CreatedBy.MANUAL,
            creation_method=request.creation_method,
            ai_provider=request.ai_provider,
            conversation_summary=request.conversation_summary,
        ),
    )
    logger.info("Created quote %s for company %s", quote.metadata.quote_id, request.company_id)
    return quote


# ── Updates ──────────────────────────────────────────────────────────


def update_quote(
    quote: Quote,
    request: UpdateQuoteRequest,
    company_defaults: CompanyDefaults | None = None,
    *,
    now: datetime | None = None,
) -> Quote:
    """Apply an explicit edit, repricing when pricing inputs change.

    Returns a new Quote; the input is left untouched.

    Raises:
        QuoteValidationError: On a disallowed status change or invalid measurements.
    """
    updated = quote.model_copy(deep=True)

    if request.status is not None and request.status != quote.metadata.status:
        allowed = ALLOWED_STATUS_TRANSITIONS[quote.metadata.status]
        if request.status not in allowed:
            raise QuoteValidationError(
                f"Cannot change status from {quote.metadata.status.value} to {request.status.value}",
                {"allowed": sorted(s.value for s in allowed)},
            )
        updated.metadata.status = request.status

    customer_updates = {
        "name": request.customer_name,
        "email": request.customer_email,
        "phone": request.customer_phone,
        "address": request.address,
    }
    updated.customer = updated.customer.model_copy(
        update={k: v for k, v in customer_updates.items() if v is not None},
    )
    if request.special_requests is not None:
        updated.project.special_requests = request.special_requests
    if request.timeline is not None:
        updated.project.timeline = request.timeline

    reprice = any(
        value is not None
        for value in (request.measurements, request.products, request.rate_overrides, request.markup_percentage)
    )
    if reprice:
        if request.measurements is not None:
            validation = validate_measurements(request.measurements)
            if not validation.is_valid:
                raise QuoteValidationError(
                    "Invalid measurements",
                    {"errors": _issues(validation.errors), "warnings": _issues(validation.warnings)},
                )
            updated.measurements = request.measurements
            updated.project.surfaces = _surfaces_in_scope(request.measurements)
        if request.products is not None:
            updated.products = request.products
        updated.pricing = recalculate_quote(
            quote,
            company_defaults,
            measurements=request.measurements,
            products=request.products,
            rate_overrides=request.rate_overrides,
            markup_override=request.markup_percentage,
        )
        logger.info(
            "Repriced quote %s: %s -> %s",
            quote.metadata.quote_id,
            quote.pricing.final_price,
            updated.pricing.final_price,
        )

    updated.metadata.updated_at = now or datetime.now(UTC)
    return updated
