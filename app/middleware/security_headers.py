"""
CORS allow-list and security headers.

``Access-Control-Allow-Origin`` is only echoed for origins on the configured
allow-list, or set to ``*`` when the list contains ``*``. Other origins get no
CORS headers at all. Security headers are added to every response.
"""

from typing import Dict, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

CORS_ALLOW_METHODS = "GET, POST, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, Authorization, X-Request-Id"
CORS_MAX_AGE = "86400"


def allowed_origin(origin: Optional[str], allow_list: Iterable[str]) -> Optional[str]:
    """Value for Access-Control-Allow-Origin, or None when the origin is not allowed."""
    allowed = list(allow_list)
    if "*" in allowed:
        return "*"
    if origin and origin in allowed:
        return origin
    return None


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, allow_origins: Iterable[str] = ()) -> None:
        super().__init__(app)
        self.allow_origins = [origin for origin in allow_origins if origin]

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)

        origin = allowed_origin(request.headers.get("origin"), self.allow_origins)
        if origin is not None:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
            response.headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
            response.headers["Access-Control-Max-Age"] = CORS_MAX_AGE
            if origin != "*":
                response.headers["Vary"] = "Origin"
        return response
