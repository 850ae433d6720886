"""
Domain exceptions and global exception handlers.

Every error leaves the API in the same envelope::

    {
        "status": "error",
        "message": "<human-readable description>",
        "errors": {"<field>": "<message>"} | null,
        "request_id": "<correlation id>"
    }

Services raise the exceptions defined here instead of FastAPI's
``HTTPException``, which keeps business logic framework-agnostic.
"""

import functools
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.middleware import new_request_id

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


# ────────────────────────────────────────────────────────────────────────────
# Domain exceptions  (raised by service layer, caught by handlers below)
# ────────────────────────────────────────────────────────────────────────────


class AppException(Exception):
    """Base exception for all application-level errors."""

    def __init__(self, status_code: int, message: str, errors: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self.message = message
        self.errors = errors
        super().__init__(message)


class NotFoundException(AppException):
    """Resource not found (404)."""

    def __init__(self, resource: str, identifier: Any):
        self.identifier = identifier
        super().__init__(status_code=404, message=f"{resource} not found")


class BadRequestException(AppException):
    """Malformed input such as a non-JSON body (400)."""

    def __init__(self, message: str = "Invalid JSON payload"):
        super().__init__(status_code=400, message=message)


class ValidationFailedException(AppException):
    """Field-level validation failure (422) carrying a ``field -> message`` map."""

    def __init__(self, errors: Dict[str, str], message: str = "Validation failed"):
        super().__init__(status_code=422, message=message, errors=errors)


class InternalError(AppException):
    """Unexpected storage or query failure (500).  Chain the cause with ``from``."""

    def __init__(self, message: str):
        super().__init__(status_code=500, message=message)


def translate_db_errors(message: str) -> Callable:
    """
    Decorator: convert ``SQLAlchemyError`` escaping an async service method
    into :class:`InternalError` with an operation-specific message.

    Domain exceptions pass through untouched.

    Example::

        @translate_db_errors("Failed to fetch donors")
        async def list_donors(self, ...):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as exc:
                raise InternalError(message) from exc

        return wrapper

    return decorator


# ────────────────────────────────────────────────────────────────────────────
# Validation error formatting
# ────────────────────────────────────────────────────────────────────────────

_LOCATION_PREFIXES = ("body", "query", "path", "header")


def validation_error_map(errors: Iterable[Dict[str, Any]]) -> Dict[str, str]:
    """
    Collapse pydantic error dicts into ``{field: message}``.

    The first message per field wins.  ``Value error, `` prefixes added by
    pydantic for custom validators are dropped.
    """
    result: Dict[str, str] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        field = ".".join(loc) or "body"
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        result.setdefault(field, msg)
    return result


def _is_malformed_body(errors: Iterable[Dict[str, Any]]) -> bool:
    """True when the body is missing, not JSON, or JSON but not an object."""
    for err in errors:
        if err.get("type") == "json_invalid" or tuple(err.get("loc", ())) == ("body",):
            return True
    return False


# ────────────────────────────────────────────────────────────────────────────
# FastAPI exception handler registration
# ────────────────────────────────────────────────────────────────────────────


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or new_request_id()


def error_response(
    request: Request,
    status_code: int,
    message: str,
    errors: Optional[Dict[str, str]] = None,
    exc: Optional[BaseException] = None,
) -> JSONResponse:
    """
    Build the error envelope.

    Server errors (>= 500) are logged with the correlation ID and, in
    production, replaced by a generic message with no detail.
    """
    request_id = _request_id(request)
    content: Dict[str, Any] = {
        "status": "error",
        "message": message,
        "errors": errors,
        "request_id": request_id,
    }

    if status_code >= 500:
        logger.error(
            "[%s] %s on %s %s",
            request_id,
            message,
            request.method,
            request.url.path,
            exc_info=exc,
            extra={"request_id": request_id, "status_code": status_code},
        )
        if settings.IS_PRODUCTION:
            content["message"] = GENERIC_ERROR_MESSAGE
            content["errors"] = None
        elif exc is not None:
            cause = exc.__cause__ or exc
            content["debug"] = {
                "exception": type(cause).__name__,
                "message": str(cause),
            }

    return JSONResponse(status_code=status_code, content=content)


def add_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI application instance."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle domain-specific exceptions raised by the service layer."""
        return error_response(request, exc.status_code, exc.message, exc.errors, exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle routing-level HTTP errors (unknown path, wrong method)."""
        return error_response(request, exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """
        Handle FastAPI request-validation errors.

        An unparseable body (or a JSON value that is not an object) is a 400;
        anything else is a 422 with a per-field message map.
        """
        errors = exc.errors()
        if _is_malformed_body(errors):
            return error_response(request, 400, "Invalid JSON payload")
        return error_response(request, 422, "Validation failed", validation_error_map(errors))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected exceptions."""
        return error_response(request, 500, "Internal Server Error", exc=exc)
