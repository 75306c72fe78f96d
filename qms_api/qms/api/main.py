from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.deps import get_db
from qms.core.errors import QMSError
from qms.core.logging import configure_logging, request_log_context
from qms.core.security import get_token_subject
from qms.core.settings import get_app_settings
from qms.db.run_migrations import main as run_alembic
from qms.db.seed import seed_all
from qms.db.session import dispose_engine
from qms.schemas.common import ErrorInfo, ErrorResponse, MessageResponse

# Routers
from qms.api.routes.auth import router as auth_router
from qms.api.routes.users import router as users_router
from qms.api.routes.organization import router as organization_router
# Domain routers
from qms.api.routes.safety import router as safety_router
from qms.api.routes.documents import router as documents_router
from qms.api.routes.records import router as records_router
from qms.api.routes.training import router as training_router
from qms.api.routes.master_data import router as masterdata_router
from qms.api.routes.quality import router as quality_router
from qms.api.routes.ncr import router as ncr_router
from qms.api.routes.complaints import router as complaints_router
from qms.api.routes.backup import router as backup_router
from qms.api.routes.reports import router as reports_router

settings = get_app_settings()

# Configure structured logging once at import
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness probe."},
    {"name": "Auth", "description": "Sign-up, login and token endpoints."},
    {"name": "Users", "description": "User administration and approval."},
    {"name": "Organization", "description": "Roles, departments, locations and the org chart."},
    {"name": "Safety", "description": "Injury incidents, near misses and safety observations."},
    {"name": "Documents", "description": "Controlled documents, approvals, revisions and change requests."},
    {"name": "Records", "description": "Quality records such as cleaning and maintenance logs."},
    {"name": "Training", "description": "Document sign-off and video training plans."},
    {"name": "Master Data", "description": "Items, customers and suppliers with CSV import."},
    {"name": "Quality", "description": "QA job tickets, staged inspections, job release and COA."},
    {"name": "NCR", "description": "Nonconformance disposition, RCA and owner review."},
    {"name": "Complaints", "description": "Customer complaints and customer notices."},
    {"name": "Backup", "description": "JSON backup export/restore and CSV data report."},
    {"name": "Reports", "description": "KPI dashboard and exportable reports (CSV/Excel/PDF)."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Enrich request context with correlation_id and the caller's user id for logging.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    user_id = None
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        user_id = get_token_subject(auth[7:].strip())
    request.state.correlation_id = corr

    with request_log_context(corr, user_id):
        logger.info("Incoming request %s %s", request.method, request.url.path)
        response = await call_next(request)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


@app.exception_handler(QMSError)
async def qms_exception_handler(request: Request, exc: QMSError):
    """
    Translate business rule failures raised by services into the error envelope.
    """
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Global handler for HTTPException to produce a standardized error envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    response = _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def _jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without `ctx`/`input`, which may hold objects JSON cannot encode."""
    return [{k: v for k, v in err.items() if k not in ("ctx", "input")} for err in exc.errors()]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=_jsonable_errors(exc),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Bring the schema to the latest revision, then store reference data when AUTO_SEED is on.

    A failed step is logged and the API still starts; /api/v1/health reports whether the
    database answers.
    """
    if settings.uses_default_secret:
        if settings.is_production:
            raise RuntimeError("JWT_SECRET_KEY must be set in production")
        logger.warning("JWT_SECRET_KEY is the built-in default; tokens are not secure")

    if settings.RUN_MIGRATIONS_ON_STARTUP:
        # Alembic drives its own event loop, so it runs off the server's loop
        try:
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Database schema is at head")
        except Exception:
            logger.exception("Schema upgrade failed")

    if settings.AUTO_SEED:
        try:
            await seed_all()
            logger.info("Reference data seeded")
        except Exception:
            logger.exception("Seeding failed")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await dispose_engine()


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    description="Liveness probe. `details.database` is 'ok' when the database answers a trivial query.",
    tags=["Health"],
)
async def health_check(session: AsyncSession = Depends(get_db)) -> MessageResponse:
    try:
        await session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.warning("Database did not answer the health check", exc_info=True)
        database = "unreachable"
    return MessageResponse(message="Healthy", details={"database": database})


# Include all routers under /api/v1
api_v1.include_router(auth_router)
api_v1.include_router(users_router)
api_v1.include_router(organization_router)
api_v1.include_router(safety_router)
api_v1.include_router(documents_router)
api_v1.include_router(records_router)
api_v1.include_router(training_router)
api_v1.include_router(masterdata_router)
api_v1.include_router(quality_router)
api_v1.include_router(ncr_router)
api_v1.include_router(complaints_router)
api_v1.include_router(backup_router)
api_v1.include_router(reports_router)

# Attach api_v1 to app
app.include_router(api_v1)
