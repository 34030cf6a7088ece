"""Explicit per-request scope threaded from the HTTP layer into services.

The scope carries the request id, the outcome of bearer-token verification
and the request deadline. It is built once per request by the auth middleware
and passed as an ordinary argument; nothing here is global or thread-local.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from api.errors import APIError


@dataclass(frozen=True)
class Verified:
    """Token verification succeeded."""

    principal_id: UUID


@dataclass(frozen=True)
class Failed:
    """Token verification failed. The error is kept for the Require stage."""

    error: "APIError"


AuthResult = Verified | Failed


@dataclass(frozen=True)
class RequestScope:
    """Request-scoped values passed alongside every service call."""

    request_id: str
    auth: AuthResult
    deadline: float | None = field(default=None, compare=False)

    @property
    def is_authenticated(self) -> bool:
        return isinstance(self.auth, Verified)

    @property
    def principal_id(self) -> UUID:
        """
        Authenticated user id.

        Raises RuntimeError if verification failed. Reaching user-scoped
        code without passing the Require stage is a wiring bug, not a
        client error.
        """
        if not isinstance(self.auth, Verified):
            raise RuntimeError(
                "No authenticated principal in request scope. "
                "Private routes must depend on require_auth."
            )
        return self.auth.principal_id

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()


def deadline_after(seconds: float | None) -> float | None:
    """Monotonic deadline `seconds` from now."""
    if seconds is None:
        return None
    return time.monotonic() + seconds


def authenticated_scope(
    principal_id: UUID,
    request_id: str = "internal",
    timeout_seconds: float | None = None,
) -> RequestScope:
    """
    Build a verified scope outside the HTTP pipeline.

    Useful for tests and maintenance scripts acting on behalf of a user.
    """
    return RequestScope(
        request_id=request_id,
        auth=Verified(principal_id),
        deadline=deadline_after(timeout_seconds),
    )


class ScopeLoggerAdapter(logging.LoggerAdapter):
    """Prefixes log lines with the request id and principal."""

    def process(self, msg, kwargs):
        extra = self.extra or {}
        prefix = f"[request_id={extra.get('request_id')}"
        if extra.get("user_id"):
            prefix += f" user_id={extra['user_id']}"
        prefix += "]"
        kwargs.setdefault("extra", {}).update(extra)
        return f"{prefix} {msg}", kwargs


def scope_logger(logger: logging.Logger, scope: "RequestScope | None") -> logging.LoggerAdapter:
    """Logger that tags every line with the scope's request id and user id."""
    if scope is None:
        return ScopeLoggerAdapter(logger, {"request_id": None, "user_id": None})
    user_id = str(scope.auth.principal_id) if isinstance(scope.auth, Verified) else None
    return ScopeLoggerAdapter(logger, {"request_id": scope.request_id, "user_id": user_id})
