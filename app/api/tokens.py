from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..container import Services
from ..core.deployment.errors import ErrorInfo, ErrorKind
from ..core.deployment.wallet import is_valid_address
from ..core.transactions.tracker import DEFAULT_PAGE_SIZE
from ..types.responses import UserTokensResponse
from .deps import error_response, get_services, store_error

router = APIRouter(prefix="/api")


@router.get("/user/tokens")
async def get_user_tokens(
    fid: Optional[str] = Query(default=None),
    cursor: Optional[str] = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_SIZE),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Tokens deployed by a requester, newest first."""
    if not fid or not fid.strip():
        return error_response(
            ErrorInfo(
                kind=ErrorKind.FID_REQUIRED,
                message="FID is required",
                user_message="Please sign in with Farcaster to view your tokens",
            )
        )
    try:
        tokens, next_cursor = await services.tracker.get_user_tokens(fid.strip(), cursor, limit)
    except Exception as exc:  # noqa: BLE001
        return store_error(exc, services.settings.secret_values)
    return JSONResponse(content=UserTokensResponse(tokens=tokens, next_cursor=next_cursor).to_json())


@router.get("/token/{address}")
async def get_token(address: str, services: Services = Depends(get_services)) -> JSONResponse:
    """Deployment record of one token."""
    if not is_valid_address(address):
        return error_response(
            ErrorInfo(kind=ErrorKind.VALIDATION_ERROR, message="Invalid token address")
        )
    try:
        record = await services.tracker.get_deployment(address)
    except Exception as exc:  # noqa: BLE001
        return store_error(exc, services.settings.secret_values)
    if record is None:
        return JSONResponse(status_code=404, content={"success": False, "error": "Token not found"})
    return JSONResponse(content={"success": True, "token": record})
