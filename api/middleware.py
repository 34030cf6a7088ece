"""Request-scoped middleware for API requests."""

import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from api.errors import error_from, error_json_response
from utils.request_scope import scope_logger

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID to every request and writes the access log line.

    A client-supplied X-Request-ID is kept when present and reasonably short;
    otherwise a fresh UUID is used. The ID is echoed on the response, including
    the redacted 500 written for an exception no handler claimed.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER, "").strip()
        if not request_id or len(request_id) > MAX_REQUEST_ID_LENGTH:
            request_id = str(uuid4())
        request.state.request_id = request_id

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            scope_logger(logger, getattr(request.state, "scope", None)).exception(
                f"Unhandled exception: {exc}"
            )
            response = error_json_response(error_from(exc))
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} "
            f"{elapsed_ms:.1f}ms [request_id={request_id}]"
        )
        return response
