"""FastAPI application entry point."""
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import settings
from app.core.structured_logging import build_log_context, configure_logging, request_id_var
from app.db.session import engine

configure_logging(settings.LOG_LEVEL)
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
        send_default_pii=False,  # medical data must never leave the API
    )
    logger.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from app.core.rate_limit import limiter

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Rehab Case API",
    description="Workplace injury case management and return-to-work rehabilitation API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
# Applies RATE_LIMIT_API to every route without its own @limiter.limit
app.add_middleware(SlowAPIMiddleware)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Stamp every request with an id, echoed back as X-Request-ID."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", None) or request_id_var.get()
    logger.exception(
        "Unhandled error",
        extra=build_log_context(request_id=request_id, route=request.url.path, method=request.method),
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": request_id},
        headers={"X-Request-ID": request_id} if request_id else None,
    )


# ============================================================================
# Routers
# ============================================================================

from app.routers import (
    activity_logs,
    admin,
    appointments,
    auth,
    cases,
    check_ins,
    clinicians,
    goal_kpi,
    incidents,
    notifications,
    rehab_plans,
    team_leader,
    users,
    work_readiness,
    work_readiness_assignments,
)

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(incidents.router, prefix="/api/incidents", tags=["incidents"])
app.include_router(cases.router, prefix="/api/cases", tags=["cases"])
app.include_router(appointments.router, prefix="/api/appointments", tags=["appointments"])
app.include_router(check_ins.router, prefix="/api/check-ins", tags=["check-ins"])
app.include_router(rehab_plans.router, prefix="/api/rehab-plans", tags=["rehab-plans"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(clinicians.router, prefix="/api/clinicians", tags=["clinicians"])
app.include_router(team_leader.router, prefix="/api/team-leader", tags=["team-leader"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(activity_logs.router, prefix="/api/activity-logs", tags=["activity-logs"])
app.include_router(work_readiness.router, prefix="/api/work-readiness", tags=["work-readiness"])
app.include_router(
    work_readiness_assignments.router,
    prefix="/api/work-readiness-assignments",
    tags=["work-readiness-assignments"],
)
app.include_router(goal_kpi.router, prefix="/api/goal-kpi", tags=["goal-kpi"])


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
