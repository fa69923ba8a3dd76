"""FastAPI application entry point — wires everything together.

Usage:
    python -m paintquote.main
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from paintquote import __version__
from paintquote.api.routes import router
from paintquote.config import settings
from paintquote.conversation.engine import IntakeService
from paintquote.conversation.providers import get_provider
from paintquote.db.engine import redis_lifespan
from paintquote.errors import PaintQuoteError, RateLimitExceeded
from paintquote.quotes.company import CompanyDirectory
from paintquote.security.rate_limiter import build_rate_limiter
from paintquote.sessions.store import build_session_store

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info(
        "Starting paintquote (env=%s, sessions=%s, provider=%s)",
        settings.environment,
        settings.sessions.session_backend,
        settings.llm.assistant_provider,
    )
    async with redis_lifespan():
        try:
            yield
        finally:
            await app.state.intake_service.provider.close()
            logger.info("paintquote shutdown complete")


def build_service(directory: CompanyDirectory) -> IntakeService:
    """Intake service for the configured session backend and provider."""
    return IntakeService(
        store=build_session_store(),
        rate_limiter=build_rate_limiter(),
        directory=directory,
        provider=get_provider(),
    )


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="paintquote API",
    description="Painting quote pricing and conversational intake",
    version=__version__,
    lifespan=lifespan,
)
app.state.directory = CompanyDirectory()
app.state.intake_service = build_service(app.state.directory)
app.include_router(router)


# ── Error handlers ───────────────────────────────────────────────────


@app.exception_handler(PaintQuoteError)
async def domain_error_handler(request: Request, exc: PaintQuoteError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitExceeded) else None
    return JSONResponse(jsonable_encoder(exc.to_dict()), status_code=exc.status_code, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        {"error": "Invalid request data", "details": jsonable_encoder(exc.errors())},
        status_code=400,
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "sessions": settings.sessions.session_backend,
        "provider": settings.llm.assistant_provider,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "paintquote.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
