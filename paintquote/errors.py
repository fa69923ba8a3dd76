"""Domain exceptions.

Every error a caller may need to surface carries an HTTP-style status code
and structured details; the API layer renders them as ``{error, details}``.
Conversational input problems are not errors: the intake machine re-prompts.
"""

from __future__ import annotations

from typing import Any


class PaintQuoteError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class QuoteValidationError(PaintQuoteError):
    """Request data cannot produce a quote (e.g. invalid measurements)."""

    status_code = 400


class CompanyNotFoundError(PaintQuoteError):
    """No company defaults are known for the requested company id."""

    status_code = 404


class SessionOwnershipError(PaintQuoteError):
    """A session id was presented under a company that does not own it.

    Reported as not-found so callers cannot probe other companies' sessions.
    """

    status_code = 404


class SessionNotFoundError(PaintQuoteError):
    """A write targeted a session that no longer exists."""

    status_code = 404


class RateLimitExceeded(PaintQuoteError):
    """Too many turns for one session within the rate window."""

    status_code = 429

    def __init__(self, retry_after: int, remaining: int = 0) -> None:
        super().__init__(
            "Rate limit exceeded",
            {
                "message": "Too many messages. Please wait a moment and try again.",
                "retry_after": retry_after,
                "remaining": remaining,
            },
        )
        self.retry_after = retry_after
        self.remaining = remaining


class PricingInvariantError(PaintQuoteError):
    """The calculator refused to emit a breakdown that would be invalid."""

    status_code = 500
