"""
Application factory for FastAPI.

This module provides the create_app() function that creates and configures
the FastAPI application instance, including the global exception handlers
that render every failure in the response envelope.
"""

import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import DataError, IntegrityError, StatementError

from api.schemas.envelope import error_body
from api.v1 import api_router
from app.routes import health_router
from core.config import settings
from core.exceptions import AppError, ForbiddenError
from core.instrumentator import instrumentator
from core.lifespan import lifespan
from core.middleware import (
    CorrelationIdMiddleware,
    DebugLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from core.rate_limit import limiter

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Internal server error"


def _stack_errors(exc: BaseException, errors: Optional[List[Dict[str, Any]]] = None) -> Optional[List[Dict[str, Any]]]:
    """Attach the traceback to the first error entry outside production."""
    if settings.api.is_production:
        return errors
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    errors = [dict(error) for error in errors] if errors else [{"message": str(exc) or type(exc).__name__}]
    errors[0]["stack"] = stack
    return errors


def _field_name(loc) -> Optional[str]:
    # ("body", "content") -> "content"; query/path params keep their name
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header")]
    return ".".join(parts) or None


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, ForbiddenError):
        logger.warning(f"Forbidden {request.method} {request.url.path} | {exc.context}")

    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        message = GENERIC_SERVER_ERROR if settings.api.is_production else exc.message
        errors = _stack_errors(exc, exc.errors)
    else:
        message = exc.message
        errors = exc.errors

    return JSONResponse(status_code=exc.status_code, content=error_body(message, errors))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": _field_name(error.get("loc", ())), "message": error.get("msg", "Invalid value")}
        for error in exc.errors()
    ]
    logger.info(f"Validation error for {request.url.path}: {errors}")
    return JSONResponse(status_code=400, content=error_body("Validation failed", errors))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return JSONResponse(status_code=409, content=error_body("Resource already exists"))


async def data_error_handler(request: Request, exc: StatementError) -> JSONResponse:
    logger.info(f"Invalid data on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content=error_body("Invalid identifier or value"))


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=error_body(f"Too many requests: {exc.detail}"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    message = GENERIC_SERVER_ERROR if settings.api.is_production else str(exc) or GENERIC_SERVER_ERROR
    return JSONResponse(status_code=500, content=error_body(message, _stack_errors(exc)))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    # DataError is a StatementError subclass; both mean a malformed value reached the database
    app.add_exception_handler(DataError, data_error_handler)
    app.add_exception_handler(StatementError, data_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def create_app() -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application with all necessary
    middleware, routes, exception handlers and instrumentation.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.api.app_name,
        version=settings.api.app_version,
        description="Customer portal backend for ServiceM8 bookings, jobs and messages",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Add rate limiter
    app.state.limiter = limiter

    register_exception_handlers(app)

    # Correlation ID middleware (always enabled)
    app.add_middleware(CorrelationIdMiddleware)

    # Debug logging middleware (only enabled when DEBUG=True)
    if settings.api.debug:
        app.add_middleware(DebugLoggingMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With", "X-Correlation-ID"],
        expose_headers=["X-Correlation-ID"],
    )

    # Security headers middleware (added after CORS)
    app.add_middleware(SecurityHeadersMiddleware)

    # Include routers
    app.include_router(health_router)
    app.include_router(api_router, prefix=settings.api.api_v1_prefix)

    # Instrumentation
    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint="/metrics")

    return app
