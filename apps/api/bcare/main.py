"""FastAPI application entry point."""
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from bcare.core.config import settings
from bcare.core.exceptions import ServiceError
from bcare.core.structured_logging import build_log_context
from bcare.db.session import engine

logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # Customer complaints carry personal data
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from bcare.core.rate_limit import limiter


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="B-Care API",
    description="Bank complaint ticketing: lifecycle, SLA and escalation",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,  # Bearer tokens, no cookies
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


# ============================================================================
# Error handlers
# ============================================================================

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query params are client errors (400, not 422)."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error: %s",
        type(exc).__name__,
        exc_info=exc,
        extra=build_log_context(
            actor_id=getattr(request.state, "actor_id", None),
            request_id=request.headers.get("X-Request-ID") or str(uuid.uuid4()),
            route=request.url.path,
            method=request.method,
        ),
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ============================================================================
# Routers
# ============================================================================

from bcare.routers import (
    activities_router,
    feedback_router,
    internal_router,
    reference_router,
    tickets_router,
)

# Ticket lifecycle, activities, history, feedback submission
app.include_router(tickets_router)
app.include_router(activities_router)
app.include_router(feedback_router)

# Reference data (read-only)
app.include_router(reference_router)

# Internal endpoints (scheduled/cron jobs - protected by INTERNAL_SECRET)
app.include_router(internal_router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
