"""FastAPI application setup."""

from __future__ import annotations

import time
import traceback
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from registrar import __version__
from registrar.api.dependencies import close_services, init_services
from registrar.api.models import ErrorResponse, FieldError
from registrar.api.routes import auth, courses, health, registrations, students
from registrar.auth import AuthError, ForbiddenError, UnauthorizedError
from registrar.data import (
    CapacityExceededError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    RegistrarError,
    ValidationFailedError,
)
from registrar.logging import get_logger, sanitize_for_log, truncate_output

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from fastapi import Response

    from registrar.config import Settings

logger = get_logger("api")

MAX_LOGGED_TARGET = 300

_STATUS_BY_CATEGORY: list[tuple[type[Exception], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (CapacityExceededError, status.HTTP_400_BAD_REQUEST),
    (ValidationFailedError, status.HTTP_400_BAD_REQUEST),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
]


def status_for(exc: Exception) -> int:
    """HTTP status for a domain or auth error."""
    for category, code in _STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(exclude_none=True)),
    )


def _field_errors(exc: RequestValidationError) -> list[FieldError]:
    errors = []
    for error in exc.errors():
        # Drop the "body"/"query"/"path" prefix from the location.
        location = [str(part) for part in error.get("loc", ())[1:]]
        errors.append(
            FieldError(
                field=".".join(location) or str(error.get("loc", ("request",))[0]),
                message=error.get("msg", "Invalid value"),
                value=error.get("input"),
            )
        )
    return errors


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    # Startup
    services = init_services(settings)
    logger.info(
        "Registrar API started (%s, database %s)",
        settings.environment,
        services.database.safe_url,
    )
    yield
    # Shutdown
    close_services()
    logger.info("Registrar API stopped")


def create_app(settings: Settings) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Registrar API",
        description="REST API for student course registration",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            truncate_output(sanitize_for_log(target), MAX_LOGGED_TARGET),
            response.status_code,
            elapsed_ms,
        )
        return response

    # Exception handlers
    @app.exception_handler(RegistrarError)
    async def registrar_error_handler(_request: Request, exc: RegistrarError) -> JSONResponse:
        return error_response(status_for(exc), ErrorResponse(message=str(exc), code=exc.code))

    @app.exception_handler(AuthError)
    async def auth_error_handler(_request: Request, exc: AuthError) -> JSONResponse:
        return error_response(status_for(exc), ErrorResponse(message=str(exc), code=exc.code))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            ErrorResponse(
                message="Validation failed",
                code=ValidationFailedError.code,
                errors=_field_errors(exc),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            body = ErrorResponse(
                message=f"Route {request.url.path} not found", code="ROUTE_NOT_FOUND"
            )
        elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            body = ErrorResponse(
                message=f"Method {request.method} not allowed", code="METHOD_NOT_ALLOWED"
            )
        else:
            body = ErrorResponse(message=str(exc.detail))
        return error_response(exc.status_code, body)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        details: dict[str, Any] = {"message": "Internal server error"}
        if not settings.is_production:
            details = {
                "message": str(exc) or "Internal server error",
                "stack": "".join(traceback.format_exception(exc)),
            }
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorResponse(code="INTERNAL_SERVER_ERROR", **details),
        )

    # Include routers
    app.include_router(health.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(students.router, prefix="/api")
    app.include_router(courses.router, prefix="/api")
    app.include_router(registrations.router, prefix="/api")

    return app
