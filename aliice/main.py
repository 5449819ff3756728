"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from aliice.core.config import settings
from aliice.core.structured_logging import build_log_context, configure_logging
from aliice.db.session import engine

configure_logging()
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
        send_default_pii=False,  # patient data never leaves the API
    )
    logger.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from aliice.core.rate_limit import limiter

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Aliice API",
    description="Agency CRM, whiteboard, team chat and marketing attribution API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["Content-Disposition"],
)

# ============================================================================
# Error envelope
# ============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "details": errors},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled error",
        extra=build_log_context(route=request.url.path, method=request.method),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})

# ============================================================================
# Routers
# ============================================================================

from aliice.routers import (
    accounts,
    auth,
    chat,
    companies,
    contacts,
    danote,
    dischat,
    marketing,
    patients,
    projects,
    search,
    tasks,
)

app.include_router(auth.router, tags=["auth"])

# CRM
app.include_router(companies.router)
app.include_router(contacts.router)
app.include_router(projects.router)
app.include_router(patients.router)
app.include_router(tasks.router)

# Assistant chat (/api/chat and stored conversations)
app.include_router(chat.router)

# Workspace tools
app.include_router(danote.router)
app.include_router(dischat.router)
app.include_router(dischat.agora_router)

# Marketing attribution (includes public lead capture and shared reports)
app.include_router(marketing.router)

# Accounts and locally stored documents
app.include_router(accounts.router)
app.include_router(accounts.files_router)

app.include_router(search.router)

# Dev router (ONLY mounted in dev mode)
if settings.ENV == "dev":
    from aliice.routers import dev
    app.include_router(dev.router, prefix="/dev", tags=["dev"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """Verifies database connectivity and returns environment info."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
