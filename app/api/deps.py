"""Shared helpers for the HTTP routes."""

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from ..container import Services
from ..core.deployment.errors import ErrorInfo, ErrorKind
from ..types.responses import DeployErrorResponse, ErrorDetails


def get_services(request: Request) -> Services:
    """Collaborators built by the application lifespan."""
    return request.app.state.services


def error_response(error: ErrorInfo, status_code: Optional[int] = None) -> JSONResponse:
    details = error.to_error_details()
    body = DeployErrorResponse(
        error=error.message,
        error_details=ErrorDetails(
            type=details["type"],
            details=details.get("details"),
            user_message=details.get("userMessage"),
            code=details.get("code"),
        ),
        debug_info=error.debug or None,
    )
    return JSONResponse(status_code=status_code or error.http_status, content=body.to_json())


def store_error(exc: Exception, secrets) -> JSONResponse:
    error = ErrorInfo(
        kind=ErrorKind.UNKNOWN_ERROR,
        message="Failed to read from the key-value store",
        details=f"{type(exc).__name__}: {exc}",
    )
    return error_response(error.redacted(secrets))
