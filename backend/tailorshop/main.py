"""
FastAPI application entry point with health endpoints and service routing.

This module provides the main FastAPI application instance with CORS
configuration, request logging, rental error mapping, health checks and the
overdue rental monitor started during the application lifespan.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from tailorshop.api.v1.billing import router as billing_router
from tailorshop.api.v1.inventory import router as inventory_router
from tailorshop.api.v1.rentals import router as rentals_router
from tailorshop.core.config import get_settings
from tailorshop.core.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    log_performance,
    set_request_id,
)
from tailorshop.core.rate_limit import limiter
from tailorshop.database.connection import (
    check_database_health,
    close_database_connections,
    get_session,
)
from tailorshop.services.rentals.exceptions import (
    ConcurrentModificationError,
    DeletionNotAllowedError,
    RentalNotFoundError,
    RentalServiceError,
    RentalValidationError,
    TransitionRefusedError,
)
from tailorshop.services.rentals.monitor import scan_overdue_rentals

# Configure logging before application initialization
configure_logging()
logger = get_logger(__name__)


async def monitor_overdue_rentals(interval_seconds: int) -> None:
    """
    Background task logging overdue rentals and their accrued penalty.

    Args:
        interval_seconds: Pause between scans
    """
    settings = get_settings()

    while True:
        try:
            async with get_session() as session:
                await scan_overdue_rentals(
                    session,
                    today=date.today(),
                    daily_rate=settings.rental_penalty_daily_rate,
                )
        except Exception as e:
            logger.error(
                "Overdue rental scan failed",
                error=str(e),
                error_type=type(e).__name__,
            )
        await asyncio.sleep(interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan context manager for startup and shutdown events.

    Args:
        app: FastAPI application instance

    Yields:
        None during application runtime
    """
    settings = get_settings()

    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        version=settings.app_version,
    )

    monitor_task = None
    with log_performance(logger, "application_startup"):
        if settings.rental_monitor_interval_seconds > 0:
            monitor_task = asyncio.create_task(
                monitor_overdue_rentals(settings.rental_monitor_interval_seconds)
            )
            logger.info(
                "Overdue rental monitor started",
                interval_seconds=settings.rental_monitor_interval_seconds,
            )

    yield

    logger.info("Application shutting down")
    with log_performance(logger, "application_shutdown"):
        if monitor_task is not None:
            monitor_task.cancel()
            try:
                await monitor_task
            except asyncio.CancelledError:
                pass
            logger.info("Overdue rental monitor stopped")
        await close_database_connections()


# Initialize FastAPI application
settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Tailor shop rental lifecycle backend API",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
)

# Configure rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """
    Middleware for request logging and correlation ID management.

    Args:
        request: Incoming HTTP request
        call_next: Next middleware or route handler

    Returns:
        HTTP response with X-Request-ID header
    """
    request_id = set_request_id(request.headers.get("X-Request-ID"))

    logger.info(
        "Request received",
        method=request.method,
        path=request.url.path,
        client_host=request.client.host if request.client else None,
    )

    try:
        with log_performance(
            logger,
            "request_processing",
            method=request.method,
            path=request.url.path,
        ):
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        return response
    except Exception as e:
        logger.error(
            "Request failed",
            method=request.method,
            path=request.url.path,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        clear_context()


def _rental_error_status(exc: RentalServiceError) -> tuple[int, str]:
    if isinstance(exc, RentalValidationError):
        return status.HTTP_400_BAD_REQUEST, "validation_error"
    if isinstance(exc, TransitionRefusedError):
        return status.HTTP_409_CONFLICT, "transition_refused"
    if isinstance(exc, ConcurrentModificationError):
        return status.HTTP_409_CONFLICT, "concurrent_modification"
    if isinstance(exc, DeletionNotAllowedError):
        return status.HTTP_409_CONFLICT, "deletion_not_allowed"
    if isinstance(exc, RentalNotFoundError):
        return status.HTTP_404_NOT_FOUND, "not_found"
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "processing_error"


@app.exception_handler(RentalServiceError)
async def rental_exception_handler(
    request: Request, exc: RentalServiceError
) -> JSONResponse:
    """
    Map rental service errors to HTTP responses.

    The response body carries the error context, so a refusal always names
    the failed precondition (``field`` for validation errors, ``reason``
    for refused transitions).
    """
    status_code, error = _rental_error_status(exc)
    if isinstance(exc, ConcurrentModificationError):
        context = {**exc.context, "reason": "concurrent_modification"}
    else:
        context = dict(exc.context)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Rental request rejected",
        method=request.method,
        path=request.url.path,
        status_code=status_code,
        error=error,
        message=exc.message,
        context=context,
    )

    content = {
        **context,
        "error": error,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors with structured error response."""
    logger.warning(
        "Request validation failed",
        method=request.method,
        path=request.url.path,
        errors=exc.errors(),
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(
            {
                "error": "Validation Error",
                "message": "Request validation failed",
                "details": exc.errors(),
                "request_id": get_request_id(),
            }
        ),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with structured error response.

    Logs error with full context and returns a generic message.
    """
    logger.error(
        "Unhandled exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
            "request_id": get_request_id(),
        },
    )


@app.get(
    "/health",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Health check endpoint",
)
async def health_check() -> dict[str, str]:
    """Basic health check; always 200 while the process is running."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get(
    "/ready",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Readiness check endpoint",
)
async def readiness_check():
    """
    Readiness check verifying database connectivity.

    Returns:
        200 with readiness details, or 503 when the database is unreachable
    """
    database_ready = await check_database_health(max_retries=1)

    if not database_ready:
        logger.warning("Readiness check failed", database="unhealthy")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "service": settings.app_name,
                "dependencies_ready": False,
                "database": "unhealthy",
            },
        )

    return {
        "status": "ready",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "dependencies_ready": True,
        "database": "healthy",
    }


app.include_router(rentals_router, prefix=settings.api_v1_prefix)
app.include_router(inventory_router, prefix=settings.api_v1_prefix)
app.include_router(billing_router, prefix=settings.api_v1_prefix)
