"""Application error taxonomy and its HTTP rendering.

Every error leaves the API as ``{"error": "<message>"}`` with a non-2xx
status. Resources hidden by ownership or visibility are reported as
``NotFoundError`` so callers cannot probe for their existence.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class TourAppError(Exception):
    """Base application error carrying its HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(TourAppError):
    status_code = 404
    default_message = "Tour not found"


class ValidationFailure(TourAppError):
    status_code = 400
    default_message = "Validation failed"


class StoreFailure(TourAppError):
    """Persistence layer unreachable or rejected the write."""

    status_code = 503
    default_message = "Storage is unavailable"


class UnauthorizedError(TourAppError):
    status_code = 401
    default_message = "Authentication required"


def error_response(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(item) for item in err.get("loc", ()) if item != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    return "; ".join(parts) or "Invalid request"


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers rendering every failure in the uniform error shape."""

    @app.exception_handler(TourAppError)
    async def app_error_handler(request: Request, exc: TourAppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
        return error_response(exc.status_code, exc.message, headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(ValidationFailure.status_code, _format_validation_errors(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))
