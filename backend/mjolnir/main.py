"""
FastAPI application entry point.

Builds the app: CORS, exception handlers and the rate limiter, then the
request logger inside the body size limit, the two pipeline routes under
/api/v1 and an unlimited /health.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from mjolnir.analyzer.rules import RULES
from mjolnir.config import get_settings
from mjolnir.middleware.cors import setup_cors
from mjolnir.middleware.error_handler import setup_error_handlers
from mjolnir.middleware.input_size_limiter import InputSizeLimitMiddleware
from mjolnir.middleware.rate_limiter import setup_rate_limiter
from mjolnir.middleware.request_logger import RequestLoggerMiddleware
from mjolnir.routes.analyze import router as analyze_router
from mjolnir.routes.convert import router as convert_router
from mjolnir.utils.logger import get_logger

logger = get_logger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: runs on startup and shutdown."""
    settings = get_settings()
    logger.info(
        "Mjolnir API started  env=%s  origins=%s  rules=%d",
        settings.ENVIRONMENT,
        settings.allowed_origins_list,
        len(RULES),
    )
    yield
    logger.info("Mjolnir API shutting down")


app = FastAPI(
    title="Mjolnir API",
    version=VERSION,
    description="Static analysis and ink! <-> Solidity conversion for smart contracts",
    lifespan=lifespan,
)

# ── Middleware ────────────────────────────────────────────────
setup_cors(app)
setup_error_handlers(app)
setup_rate_limiter(app)

# Request ids and the access log
app.add_middleware(RequestLoggerMiddleware)

# Outermost: oversized bodies never reach the routes
settings = get_settings()
app.add_middleware(InputSizeLimitMiddleware, max_bytes=settings.MAX_INPUT_SIZE_BYTES)

# ── Routes ────────────────────────────────────────────────────
app.include_router(analyze_router, prefix="/api/v1")
app.include_router(convert_router, prefix="/api/v1")


# ── Health Check ──────────────────────────────────────────────
@app.get("/health", tags=["system"])
async def health_check() -> dict:
    """Return API health status."""
    return {"status": "ok", "version": VERSION}
