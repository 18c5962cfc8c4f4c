"""
Input validation for deployment requests.

Hard rejections (missing fields, bad lengths, bad images, unparseable cast
context) return ``Err`` before any network call. The creator fee percentage is
deliberately permissive: anything unusable falls back to the configured
default instead of failing the request.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from .errors import ErrorInfo, ErrorKind
from .models import CastAuthor, CastContext, DeploymentRequest, ImageBlob, RawDeploymentInput
from .result import Err, Ok, Result

MAX_NAME_LENGTH = 32
MIN_SYMBOL_LENGTH = 3
MAX_SYMBOL_LENGTH = 8
MAX_IMAGE_BYTES = 10 * 1024 * 1024
ALLOWED_IMAGE_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/jpg", "image/gif", "image/webp"}
)

CAST_CONTEXT_TYPE = "cast"
IGNORED_CONTEXT_TYPES = frozenset({"notification", "share", "direct"})

_SCRIPT_BLOCK_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_UNSAFE_CHARS_RE = re.compile(r"[<>\"'&]")
_FEE_RE = re.compile(r"[0-9]+")


def sanitize_text(value: str) -> str:
    """Strip script blocks, HTML tags and ``< > " ' &``, then trim."""
    value = _SCRIPT_BLOCK_RE.sub("", value)
    value = _TAG_RE.sub("", value)
    value = _UNSAFE_CHARS_RE.sub("", value)
    return value.strip()


def _validation_error(message: str, user_message: Optional[str] = None, details: Any = None) -> Err[ErrorInfo]:
    return Err(
        ErrorInfo(
            kind=ErrorKind.VALIDATION_ERROR,
            message=message,
            details=details,
            user_message=user_message or message,
        )
    )


def resolve_fee_percentage(raw: Optional[str], default: int) -> int:
    """Parse a fee percentage, falling back to ``default`` when unusable."""
    if raw is None:
        return default
    text = str(raw).strip()
    if not _FEE_RE.fullmatch(text):
        return default
    value = int(text)
    if value > 100:
        return default
    return value


def validate_image(image: ImageBlob) -> Optional[str]:
    if image.size > MAX_IMAGE_BYTES:
        return "Image file is too large (max 10MB)"
    if (image.content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        return "Invalid image type. Allowed types: PNG, JPEG, GIF, WebP"
    return None


def parse_cast_context(raw: Optional[str]) -> Result[Optional[CastContext], ErrorInfo]:
    """Parse the optional launch context JSON.

    ``cast`` contexts are kept, the other known launch contexts are treated as
    absent, anything else is rejected.
    """
    if raw is None or not str(raw).strip():
        return Ok(None)

    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        return _validation_error(
            "Invalid cast context format",
            user_message="Could not read the cast this token was launched from",
        )

    if payload is None:
        return Ok(None)
    if not isinstance(payload, dict):
        return _validation_error("Invalid cast context format")

    context_type = payload.get("type")
    if context_type in IGNORED_CONTEXT_TYPES:
        return Ok(None)
    if context_type != CAST_CONTEXT_TYPE:
        return _validation_error(
            "Unsupported launch context type",
            details={"contextType": context_type},
        )

    author = payload.get("author")
    cast_id = payload.get("castId")
    if not cast_id or not isinstance(author, dict) or author.get("fid") in (None, "") or not author.get("username"):
        return _validation_error("Cast context is missing castId or author")

    return Ok(
        CastContext(
            cast_id=str(cast_id),
            parent_cast_id=str(payload["parentCastId"]) if payload.get("parentCastId") else None,
            embed_url=payload.get("embedUrl") or None,
            author=CastAuthor(
                fid=str(author["fid"]),
                username=str(author["username"]),
                display_name=author.get("displayName"),
                pfp_url=author.get("pfpUrl"),
            ),
        )
    )


def validate_request(raw: RawDeploymentInput, default_fee_percentage: int) -> Result[DeploymentRequest, ErrorInfo]:
    """Normalize and validate a raw deployment request."""
    name = sanitize_text(raw.name) if raw.name else ""
    symbol = sanitize_text(raw.symbol) if raw.symbol else ""
    image = raw.image if raw.image is not None and raw.image.size > 0 else None

    missing: List[str] = []
    if not name:
        missing.append("name")
    if not symbol:
        missing.append("symbol")
    if image is None:
        missing.append("image")
    if missing:
        return _validation_error(
            f"Missing required fields: {', '.join(missing)}",
            user_message="Please fill in all required fields",
            details={"missingFields": missing},
        )

    if len(name) > MAX_NAME_LENGTH:
        return _validation_error(
            "Token name must be 32 characters or less",
            user_message="Token name is too long. Please use 32 characters or less.",
        )

    if not MIN_SYMBOL_LENGTH <= len(symbol) <= MAX_SYMBOL_LENGTH:
        return _validation_error(
            "Symbol must be between 3 and 8 characters",
            user_message="Token symbol must be between 3 and 8 characters.",
        )

    image_problem = validate_image(image)
    if image_problem:
        return _validation_error(image_problem)

    context = parse_cast_context(raw.cast_context)
    if isinstance(context, Err):
        return context

    requester_id = raw.fid.strip() if raw.fid and raw.fid.strip() else None

    return Ok(
        DeploymentRequest(
            name=name,
            symbol=symbol,
            image=image,
            fee_percentage=resolve_fee_percentage(raw.creator_fee_percentage, default_fee_percentage),
            requester_id=requester_id,
            cast_context=context.value,
        )
    )


def describe_request(request: DeploymentRequest) -> Dict[str, Any]:
    """Loggable summary; never includes image bytes."""
    return {
        "name": request.name,
        "symbol": request.symbol,
        "fid": request.requester_id,
        "image_type": request.image.content_type,
        "image_bytes": request.image.size,
        "fee_percentage": request.fee_percentage,
        "has_cast_context": request.cast_context is not None,
    }


__all__ = [
    "MAX_NAME_LENGTH",
    "MIN_SYMBOL_LENGTH",
    "MAX_SYMBOL_LENGTH",
    "MAX_IMAGE_BYTES",
    "ALLOWED_IMAGE_TYPES",
    "sanitize_text",
    "resolve_fee_percentage",
    "validate_image",
    "parse_cast_context",
    "validate_request",
    "describe_request",
]
