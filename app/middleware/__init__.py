from .logging_middleware import RequestLoggingMiddleware
from .security_headers import SecurityHeadersMiddleware, allowed_origin

__all__ = [
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "allowed_origin",
]
