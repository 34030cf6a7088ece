"""Bearer-token authentication pipeline: Verify middleware and Require gate.

Verify runs on every request and never rejects. It records the outcome in the
request's `RequestScope` so that public routes (login, register) go through
the same middleware stack as private ones. Require is a dependency attached
to private routers; it turns a failed verification into the stored 401 and
otherwise hands the scope, with its principal, to the handler.
"""

from uuid import uuid4

from fastapi import Depends, Request
from starlette.middleware.base import BaseHTTPMiddleware

from auth.exceptions import AuthError, MalformedAuthHeaderError, MissingAuthHeaderError
from auth.token import TokenCodec
from utils.request_scope import AuthResult, Failed, RequestScope, Verified, deadline_after

BEARER_PREFIX = "Bearer "


def verify_authorization(header_value: str | None, token_codec: TokenCodec) -> AuthResult:
    """
    Validate an Authorization header value.

    The scheme match is exact: case-sensitive "Bearer" followed by a single
    space. Token errors from the codec are kept as-is.
    """
    try:
        if not header_value:
            raise MissingAuthHeaderError()
        if not header_value.startswith(BEARER_PREFIX):
            raise MalformedAuthHeaderError()
        token = header_value[len(BEARER_PREFIX):]
        return Verified(token_codec.verify(token))
    except AuthError as e:
        return Failed(e)


class VerifyAuthMiddleware(BaseHTTPMiddleware):
    """Middleware that verifies the bearer token and builds the request scope.

    For every request:
    1. Reads the request id assigned by RequestIDMiddleware (or makes one)
    2. Verifies the Authorization header via TokenCodec
    3. Stores a RequestScope with the outcome and deadline in request.state

    Never short-circuits; rejecting is the job of `require_auth`.
    """

    def __init__(self, app, token_codec: TokenCodec, request_timeout_seconds: float | None = None):
        super().__init__(app)
        self._token_codec = token_codec
        self._request_timeout_seconds = request_timeout_seconds

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        request_id = getattr(request.state, "request_id", None) or str(uuid4())
        request.state.scope = RequestScope(
            request_id=request_id,
            auth=verify_authorization(request.headers.get("Authorization"), self._token_codec),
            deadline=deadline_after(self._request_timeout_seconds),
        )
        return await call_next(request)


async def get_scope(request: Request) -> RequestScope:
    """Request scope built by VerifyAuthMiddleware."""
    scope = getattr(request.state, "scope", None)
    if scope is None:
        raise RuntimeError("VerifyAuthMiddleware is not installed on this app")
    return scope


async def require_auth(scope: RequestScope = Depends(get_scope)) -> RequestScope:
    """
    Gate for private routes.

    Raises the error recorded by the Verify stage, which the error handlers
    answer with 401 before the route handler runs.
    """
    if isinstance(scope.auth, Failed):
        raise scope.auth.error
    return scope
