"""
SchoolShare API application.

Main application entry point that configures:
- CORS middleware
- API routers
- Database lifecycle and first admin account
- Logging system and remote log shipping
- Exception handlers (error envelope for domain errors, 500 for the rest)
- Prometheus metrics
- Graceful shutdown
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from schoolshare.config import get_settings
from schoolshare.database import close_db, get_db_context, init_db
from schoolshare.exceptions import SchoolShareError
from schoolshare.middlewares.logging_middleware import LoggingMiddleware
from schoolshare.middlewares.rate_limit_middleware import setup_rate_limit_exception_handler
from schoolshare.middlewares.request_tracking_middleware import (
    RequestTrackingMiddleware,
    request_tracker,
)
from schoolshare.routers import (
    auth_router,
    events_router,
    health_router,
    share_router,
    shares_router,
    tagging_router,
)
from schoolshare.schemas.common import ErrorResponse
from schoolshare.schemas.user import AdminCreate
from schoolshare.services.auth import AuthService
from schoolshare.services.log_shipper import install_log_shipping
from schoolshare.utils.config_validator import validate_configuration
from schoolshare.utils.logger import get_request_id, log_error, log_info, setup_logging
from schoolshare.utils.prometheus_metrics import exceptions_total, ready, setup_prometheus

settings = get_settings()
logger = logging.getLogger("schoolshare")

setup_logging()

SHUTDOWN_TIMEOUT_SECONDS = 30.0


async def bootstrap_admin() -> None:
    """Create the first admin account from settings when configured."""
    if not (settings.admin_bootstrap_email and settings.admin_bootstrap_password):
        return
    async with get_db_context() as session:
        created = await AuthService(session).ensure_admin(AdminCreate(
            email=settings.admin_bootstrap_email,
            username=settings.admin_bootstrap_username,
            password=settings.admin_bootstrap_password,
        ))
    if created is not None:
        log_info("Bootstrap admin created", event="lifecycle", user_id=created.id)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan with graceful shutdown.

    Shutdown flow:
    1. Health checks fail immediately (ready=0) so the load balancer stops routing
    2. Wait for in-flight requests (at most 30 seconds)
    3. Flush shipped logs
    4. Close database connections
    """
    try:
        await validate_configuration()
    except ValueError as e:
        log_error("Startup failed: configuration validation errors", error_message=str(e), event="lifecycle")
        raise RuntimeError(str(e)) from e

    await init_db()
    await bootstrap_admin()

    log_shipper = install_log_shipping()
    if log_shipper is not None:
        await log_shipper.start()

    ready.set(1)
    log_info(
        "Application startup completed",
        event="lifecycle",
        version=settings.app_version,
        environment=settings.environment.value,
    )

    yield

    ready.set(0)
    log_info("Application shutdown initiated", event="lifecycle")

    await request_tracker.wait_for_requests(timeout=SHUTDOWN_TIMEOUT_SECONDS)

    if log_shipper is not None:
        await log_shipper.stop()

    await close_db()

    log_info("Graceful shutdown completed", event="lifecycle")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## SchoolShare API

Share links for school event photography.

### Features
- **Events**: Events, nested folders, photos and subjects (students, classes)
- **Tagging**: Link photos to subjects one by one, in batches or by criteria
- **Share links**: Folder, event or photo-list scopes with expiry, view limits and passwords
- **Public access**: Guardians open share links without an account

### Authentication
Admin endpoints require a Bearer token from `/auth/login`.
Share links are public; password-protected ones take the `X-Share-Password` header.
    """,
    openapi_tags=[
        {"name": "Authentication", "description": "Staff login"},
        {"name": "Events", "description": "Events, folders, photos and subjects"},
        {"name": "Tagging", "description": "Photo to subject tagging"},
        {"name": "Shares", "description": "Share link management"},
        {"name": "Shared Photos", "description": "Public access to share links"},
    ],
    lifespan=lifespan,
)

# Prometheus: FastAPI metrics + node info at /metrics
setup_prometheus(app)

setup_rate_limit_exception_handler(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestTrackingMiddleware)


@app.exception_handler(SchoolShareError)
async def schoolshare_exception_handler(request: Request, exc: SchoolShareError):
    """Render domain errors as ``{"success": false, "error_kind", "detail"}`` (+ ``field``)."""
    body = ErrorResponse(error_kind=exc.kind, detail=exc.message, field=exc.field)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Unhandled exception handler with structured logging.

    Logs at ERROR and answers 500 with the request id for support lookups.
    """
    exceptions_total.inc()
    rid = get_request_id()

    log_error(
        "Unhandled exception occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        error_code="INTERNAL_SERVER_ERROR",
        http_method=request.method,
        request_id=rid,
        event="exception",
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error_kind": "internal_error",
            "detail": "Internal server error",
            "request_id": rid,
        },
    )


# Include routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(events_router)
app.include_router(tagging_router)
app.include_router(shares_router)
app.include_router(share_router)


@app.get(
    "/",
    tags=["Root"],
    summary="API information",
)
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
