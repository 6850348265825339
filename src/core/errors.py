"""Application errors and their HTTP mapping.

Every route converts failures into one of these classes; the handlers
registered by ``register_exception_handlers`` turn them into
``{"error": <message>}`` JSON bodies.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from src.services.observability import get_current_trace_id
from src.utils.logger import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Erro interno do servidor"


class AppError(Exception):
    """Base error carrying a user-facing message and an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400


class AuthenticationError(AppError):
    """Missing/invalid session, wrong password or wrong code."""

    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """State precondition violated (e.g. 2FA already enabled)."""

    status_code = 400


class RateLimitError(AppError):
    status_code = 429


class UpstreamError(AppError):
    """An external dependency (message delivery) failed."""

    status_code = 502


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as JSON."""
    logger.info(
        "request_rejected",
        path=request.url.path,
        status_code=exc.status_code,
        error_type=type(exc).__name__,
    )
    return _error_response(exc.status_code, exc.message)


async def http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:
    """Keep the ``{"error": ...}`` shape for framework-raised HTTP errors."""
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(exc.status_code, message)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body/query validation failures are client errors (400)."""
    errors = exc.errors()
    fields = [
        ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query"))
        for err in errors
    ]
    message = "Dados inválidos"
    if fields and any(fields):
        message = f"Dados inválidos: {', '.join(f for f in fields if f)}"
    return _error_response(400, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and answer with a generic 500."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        trace_id=get_current_trace_id(),
    )
    return _error_response(500, INTERNAL_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to the application.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, validation_exception_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, unhandled_exception_handler)
