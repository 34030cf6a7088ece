"""
Error taxonomy and the global exception handlers that turn it into responses.

Every failure that reaches a client is an `APIError` carrying one status class
from a closed set. Handlers, services and repositories raise it and let it
propagate untouched; the exception handlers registered here are the only
place that picks the wire status, decides whether `data` is emitted and
decides whether a log line is written.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from api.base import failure_response
from utils.request_scope import scope_logger

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Unexpected error."


class ErrorClass(Enum):
    """Closed set of error classes with their HTTP status codes."""

    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL = 500

    @property
    def status_code(self) -> int:
        return self.value


@dataclass(frozen=True)
class FieldErrors:
    """Per-field validation messages."""

    fields: dict[str, str]

    def to_json(self) -> dict[str, str]:
        return dict(self.fields)


@dataclass(frozen=True)
class Detail:
    """A single free-form detail string."""

    text: str

    def to_json(self) -> str:
        return self.text


ErrorData = FieldErrors | Detail | None


class APIError(Exception):
    """Classified failure that maps directly to an error envelope."""

    def __init__(
        self,
        error_class: ErrorClass,
        message: str,
        data: ErrorData = None,
    ):
        self.error_class = error_class
        self.message = message
        self.data = data
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return self.error_class.status_code

    @property
    def is_internal(self) -> bool:
        return self.error_class is ErrorClass.INTERNAL

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_class.name}, {self.message!r})"


# =============================================================================
# CONSTRUCTION HELPERS
# =============================================================================


def invalid_id(raw: str) -> APIError:
    """Path parameter is not a valid UUID."""
    return APIError(ErrorClass.BAD_REQUEST, f"Invalid ID '{raw}'.")


def invalid_json(detail: str | None = None) -> APIError:
    """Request body could not be decoded as a JSON object."""
    return APIError(
        ErrorClass.BAD_REQUEST,
        "Invalid JSON request body.",
        Detail(detail) if detail else None,
    )


def invalid_query(fields: dict[str, str]) -> APIError:
    """URL query parameters could not be parsed."""
    return APIError(
        ErrorClass.BAD_REQUEST,
        f"Invalid URL query: {', '.join(sorted(fields))}.",
        FieldErrors(fields),
    )


def validation_failed(fields: dict[str, str]) -> APIError:
    """One or more fields failed validation."""
    return APIError(ErrorClass.BAD_REQUEST, "Invalid input value.", FieldErrors(fields))


def field_messages(exc: ValidationError | RequestValidationError) -> dict[str, str]:
    """
    Flatten pydantic errors into {field: message}.

    Messages are capitalized and end with a period. The first message wins
    when a field has several.
    """
    fields: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        key = ".".join(loc) or "__root__"
        if key in fields:
            continue
        message = str(err.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        message = message[:1].upper() + message[1:]
        if not message.endswith("."):
            message += "."
        fields[key] = message
    return fields


def from_validation_error(exc: ValidationError) -> APIError:
    """Validation failure built from a pydantic ValidationError."""
    return validation_failed(field_messages(exc))


def permission_denied() -> APIError:
    """Principal does not own the resource."""
    return APIError(ErrorClass.FORBIDDEN, "Permission denied.")


def id_not_found(resource_id: UUID | str) -> APIError:
    """No row matches the id."""
    return APIError(ErrorClass.NOT_FOUND, f"ID '{resource_id}' not found.")


def conflict(key: str, value: str) -> APIError:
    """Unique key already taken."""
    return APIError(ErrorClass.CONFLICT, f"{key} '{value}' already exists.")


def internal(cause: BaseException | str) -> APIError:
    """
    Internal failure.

    The message keeps the real cause for the server log; clients only ever
    see INTERNAL_ERROR_MESSAGE.
    """
    error = APIError(ErrorClass.INTERNAL, str(cause))
    if isinstance(cause, BaseException):
        error.__cause__ = cause
    return error


def error_from(exc: BaseException) -> APIError:
    """Classify any exception. Unknown exceptions are internal."""
    if isinstance(exc, APIError):
        return exc
    return internal(exc)


# =============================================================================
# BOUNDARY
# =============================================================================


def error_content(error: APIError) -> dict[str, Any]:
    """Envelope for an error. Internal errors are fully redacted."""
    if error.is_internal:
        return failure_response(error.status_code, INTERNAL_ERROR_MESSAGE)
    data = error.data.to_json() if error.data is not None else None
    return failure_response(error.status_code, error.message, data)


def error_json_response(error: APIError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error_content(error))


def _request_logger(request: Request) -> logging.LoggerAdapter:
    return scope_logger(logger, getattr(request.state, "scope", None))


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        log = _request_logger(request)
        if exc.is_internal:
            log.error(
                f"Internal error: {exc.message}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )
        else:
            log.info(f"Client error: {exc.message}")
        return error_json_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        error = validation_failed(field_messages(exc))
        _request_logger(request).info(f"Client error: {error.message}")
        return error_json_response(error)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = "Resource not found."
        elif exc.status_code == 405:
            message = "Method not allowed."
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=failure_response(exc.status_code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        _request_logger(request).exception(f"Unhandled exception: {exc}")
        return error_json_response(error_from(exc))
