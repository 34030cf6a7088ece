"""API modules for HTTP interface."""

from api.base import (
    APIResponse,
    ResponseStatus,
    success_response,
    failure_response,
)
from api.errors import (
    APIError,
    ErrorClass,
    register_error_handlers,
)
