"""
HTTP request logging middleware.

Logs every request with method, route, status code and duration, and binds a
request id into structlog contextvars for everything logged downstream. Token
launcher specifics (requester fid, queued mode, job id, token address) are
added to the access log when the request carries them.
"""

import time
import uuid
from typing import Any, Dict

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("http")

REQUEST_ID_HEADER = "x-request-id"

# Path parameters worth having on the access log
_LOGGED_PATH_PARAMS = {"transaction_id": "transaction_id", "address": "token_address"}


def request_log_context(request: Request) -> Dict[str, Any]:
    """Launcher fields for the access log. Read after routing has run."""
    context: Dict[str, Any] = {}

    route = request.scope.get("route")
    if route is not None and getattr(route, "path", None):
        context["route"] = route.path

    fid = request.query_params.get("fid")
    if fid:
        context["fid"] = fid
    if request.query_params.get("queued", "").lower() in ("1", "true"):
        context["queued"] = True
        context["priority"] = request.query_params.get("priority") or "normal"

    for param, field in _LOGGED_PATH_PARAMS.items():
        value = request.path_params.get(param)
        if value:
            context[field] = value
    return context


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log HTTP requests with timing and status info."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 1)

            if status_code >= 500:
                log = logger.error
            elif status_code >= 400:
                log = logger.warning
            else:
                log = logger.info

            log(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status_code,
                duration_ms=duration_ms,
                client=request.client.host if request.client else None,
                **request_log_context(request),
            )
