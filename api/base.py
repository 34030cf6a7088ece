"""Unified API response envelope."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ResponseStatus(str, Enum):
    """
    Envelope status.

    FAIL is used for client errors (4xx), ERROR for server errors (5xx).
    """

    SUCCESS = "SUCCESS"
    FAIL = "FAIL"
    ERROR = "ERROR"


class APIResponse(BaseModel):
    """
    Response format for all API endpoints.

    Every endpoint returns this structure, making client parsing predictable.
    Members that are None are omitted on the wire.
    """

    status: ResponseStatus
    message: str | None = Field(None, description="Human-readable message")
    data: Any | None = None

    def to_json(self) -> dict[str, Any]:
        """Wire representation with empty members dropped."""
        return self.model_dump(mode="json", exclude_none=True)


def success_response(data: Any = None) -> dict[str, Any]:
    """Envelope for a successful request, optionally carrying a payload."""
    return APIResponse(status=ResponseStatus.SUCCESS, data=data).to_json()


def failure_response(status_code: int, message: str, data: Any = None) -> dict[str, Any]:
    """Envelope for an error response. 5xx codes are marked ERROR."""
    status = ResponseStatus.ERROR if status_code >= 500 else ResponseStatus.FAIL
    return APIResponse(status=status, message=message, data=data).to_json()
