"""
Error Classification

Stable error taxonomy for the deployment pipeline, the ``ErrorInfo`` value
surfaced to callers, and the exception classes collaborators raise inside a
deployment attempt. Exceptions are either retryable (the executor backs off
and tries again) or terminal (the attempt loop stops immediately).
"""

import asyncio
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Optional

import httpx


class ErrorKind(str, Enum):
    """Error kinds surfaced as ``errorDetails.type``."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    WALLET_REQUIREMENT_ERROR = "WALLET_REQUIREMENT_ERROR"
    FID_REQUIRED = "FID_REQUIRED"
    WALLET_CHECK_ERROR = "WALLET_CHECK_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    SDK_DEPLOYMENT_ERROR = "SDK_DEPLOYMENT_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    QUEUE_ERROR = "QUEUE_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# Kinds caused by the caller's input or account state
CLIENT_ERROR_KINDS = frozenset(
    {
        ErrorKind.VALIDATION_ERROR,
        ErrorKind.WALLET_REQUIREMENT_ERROR,
        ErrorKind.FID_REQUIRED,
    }
)

REDACTED = "[REDACTED]"


def redact_secrets(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of a secret value in ``text``."""
    if not text:
        return text
    # Longest first so a 0x-prefixed key is not half-replaced by its bare form
    for secret in sorted((s for s in secrets if s), key=len, reverse=True):
        text = text.replace(secret, REDACTED)
    return text


@dataclass(frozen=True)
class ErrorInfo:
    """Terminal error surfaced to the caller."""

    kind: ErrorKind
    message: str
    code: Optional[str] = None
    cause: Optional[str] = None
    details: Any = None
    user_message: Optional[str] = None
    debug: Dict[str, Any] = field(default_factory=dict)

    @property
    def http_status(self) -> int:
        return 400 if self.kind in CLIENT_ERROR_KINDS else 500

    def to_error_details(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.kind.value}
        if self.details is not None:
            payload["details"] = self.details
        if self.user_message:
            payload["userMessage"] = self.user_message
        if self.code:
            payload["code"] = self.code
        return payload

    def redacted(self, secrets: Iterable[str]) -> "ErrorInfo":
        secrets = list(secrets)
        if not secrets:
            return self

        def scrub(value: Any) -> Any:
            if isinstance(value, str):
                return redact_secrets(value, secrets)
            if isinstance(value, dict):
                return {k: scrub(v) for k, v in value.items()}
            if isinstance(value, list):
                return [scrub(v) for v in value]
            return value

        return replace(
            self,
            message=scrub(self.message),
            code=scrub(self.code),
            cause=scrub(self.cause),
            details=scrub(self.details),
            user_message=scrub(self.user_message),
            debug=scrub(self.debug),
        )


class DeploymentError(Exception):
    """Base class for failures raised inside a deployment attempt."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class RetryableDeploymentError(DeploymentError):
    """Transient failure; the executor retries it within the attempt bound."""


class TerminalDeploymentError(DeploymentError):
    """Failure that retrying cannot fix (e.g. the service rejected the request)."""


class TransactionRevertedError(RetryableDeploymentError):
    """Deployment transaction was mined but reverted."""

    def __init__(self, tx_hash: str):
        super().__init__(f"Transaction {tx_hash} reverted on chain", code="TX_REVERTED")
        self.tx_hash = tx_hash


class ReceiptTimeoutError(RetryableDeploymentError):
    """No confirmed receipt within the configured wait."""

    def __init__(self, tx_hash: str, timeout_seconds: float):
        super().__init__(
            f"Timed out after {timeout_seconds:.0f}s waiting for receipt of {tx_hash}",
            code="RECEIPT_TIMEOUT",
        )
        self.tx_hash = tx_hash


class InvalidDeploymentResponse(RetryableDeploymentError):
    """Deployment service answered with a shape we cannot interpret."""

    def __init__(self, message: str = "Invalid deployment result from deployment service"):
        super().__init__(message, code="INVALID_RESPONSE")


@dataclass(frozen=True)
class CapturedFailure:
    """What we keep of an exception raised during an attempt."""

    message: str
    name: str
    code: Optional[str] = None
    cause: Optional[str] = None


def is_transport_error(error: BaseException) -> bool:
    return isinstance(error, (httpx.TransportError, asyncio.TimeoutError, TimeoutError, ConnectionError))


def capture_failure(error: BaseException) -> CapturedFailure:
    """Capture ``{message, name, code?, cause?}`` from an attempt failure."""
    code = getattr(error, "code", None)
    if code is None and isinstance(error, httpx.HTTPStatusError):
        code = str(error.response.status_code)
    cause = error.__cause__ or error.__context__
    message = str(error) or type(error).__name__
    return CapturedFailure(
        message=message,
        name=type(error).__name__,
        code=str(code) if code is not None else None,
        cause=f"{type(cause).__name__}: {cause}" if cause is not None else None,
    )


def attempt_error_kind(error: BaseException) -> ErrorKind:
    return ErrorKind.NETWORK_ERROR if is_transport_error(error) else ErrorKind.SDK_DEPLOYMENT_ERROR


__all__ = [
    "ErrorKind",
    "ErrorInfo",
    "CLIENT_ERROR_KINDS",
    "REDACTED",
    "redact_secrets",
    "DeploymentError",
    "RetryableDeploymentError",
    "TerminalDeploymentError",
    "TransactionRevertedError",
    "ReceiptTimeoutError",
    "InvalidDeploymentResponse",
    "CapturedFailure",
    "capture_failure",
    "is_transport_error",
    "attempt_error_kind",
]
