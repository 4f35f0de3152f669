"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from marketplace_policy.core.config import settings
from marketplace_policy.core.exceptions import (
    AuditWriteFailure,
    AuthorizationError,
    BadgeGateViolation,
    InvalidTransition,
    LeadVersionConflict,
    ResourceNotFound,
)
from marketplace_policy.core.structured_logging import build_log_context, configure_logging
from marketplace_policy.db.session import engine

configure_logging()
logger = logging.getLogger(__name__)


# Initialize Sentry for error tracking (production only)
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
        send_default_pii=False,  # Don't send PII to Sentry
    )
    logging.info("Sentry initialized for error tracking")


app = FastAPI(
    title="Marketplace Policy API",
    description="Authorization and trust-disclosure policy engine for the advisor marketplace",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# =============================================================================
# Error translation
# =============================================================================

@app.exception_handler(ResourceNotFound)
async def not_found_handler(request: Request, exc: ResourceNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc) or "Not found"})


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    """
    Denials on resources the caller can read.

    Unreadable resources never get here: services report them as
    ResourceNotFound.
    """
    status_code = 409 if isinstance(exc, BadgeGateViolation) else 403
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.reason, "error": type(exc).__name__},
    )


@app.exception_handler(InvalidTransition)
@app.exception_handler(LeadVersionConflict)
async def conflict_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


@app.exception_handler(AuditWriteFailure)
async def audit_failure_handler(request: Request, exc: AuditWriteFailure):
    logger.error(
        "Audit write failure surfaced to client",
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    return JSONResponse(status_code=500, content={"detail": "Internal error"})


# =============================================================================
# Routers
# =============================================================================

from marketplace_policy.routers import (  # noqa: E402
    access,
    claims,
    conversations,
    leads,
    listings,
    notes,
    reviews,
    trust,
    users,
)

app.include_router(access.router, prefix="/access", tags=["access"])
app.include_router(leads.router, prefix="/leads", tags=["leads"])
app.include_router(conversations.router, prefix="/conversations", tags=["conversations"])
app.include_router(claims.router, prefix="/claims", tags=["claims"])
app.include_router(notes.router, tags=["notes"])  # Mixed paths: /client-records/{id}/notes and /notes/{id}
app.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
app.include_router(listings.router, tags=["listings"])  # Mixed paths: /listings/... and /disclosures/...
app.include_router(trust.router, prefix="/trust", tags=["trust"])
app.include_router(users.router, prefix="/users", tags=["users"])


@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
