"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, ensure_utc
from utils.request_scope import (
    RequestScope,
    Verified,
    Failed,
    authenticated_scope,
    scope_logger,
)
