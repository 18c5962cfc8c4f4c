"""
Wallet connection

Links a requester (FID) to the wallet that should administer their tokens
and receive creator rewards. The deploy pipeline reads these records when
resolving the creator wallet.
"""

import time
from typing import Optional, Union

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from ..container import Services
from ..core.deployment.errors import ErrorInfo, ErrorKind
from ..core.deployment.wallet import is_valid_address, wallet_key
from .deps import error_response, get_services, store_error

router = APIRouter(prefix="/api")

logger = structlog.stdlib.get_logger(__name__)

WALLET_TTL_SECONDS = 7 * 24 * 3600


class ConnectWalletRequest(BaseModel):
    """Wallet to link to a requester."""
    model_config = ConfigDict(populate_by_name=True)

    fid: Optional[Union[int, str]] = Field(default=None, description="Requester identity")
    wallet_address: Optional[str] = Field(default=None, alias="walletAddress")
    enable_creator_rewards: bool = Field(default=True, alias="enableCreatorRewards")


@router.post("/connectWallet")
async def connect_wallet(
    payload: ConnectWalletRequest,
    services: Services = Depends(get_services),
) -> JSONResponse:
    fid = str(payload.fid).strip() if payload.fid is not None else ""
    if not fid or not payload.wallet_address:
        return error_response(
            ErrorInfo(kind=ErrorKind.VALIDATION_ERROR, message="Missing required fields")
        )
    if not is_valid_address(payload.wallet_address):
        return error_response(
            ErrorInfo(kind=ErrorKind.VALIDATION_ERROR, message="Invalid wallet address format")
        )

    record = {
        "address": payload.wallet_address,
        "enableCreatorRewards": payload.enable_creator_rewards,
        "connectedAt": int(time.time() * 1000),
    }
    try:
        await services.store.set(wallet_key(fid), record, WALLET_TTL_SECONDS)
    except Exception as exc:  # noqa: BLE001
        logger.error("wallet_connect_failed", fid=fid, error=str(exc))
        return error_response(
            ErrorInfo(
                kind=ErrorKind.UNKNOWN_ERROR,
                message="Failed to connect wallet",
                details=f"{type(exc).__name__}: {exc}",
            ).redacted(services.settings.secret_values)
        )

    logger.info("wallet_connected", fid=fid, rewards=payload.enable_creator_rewards)
    return JSONResponse(content={"success": True, "message": "Wallet connected successfully"})


@router.get("/connectWallet")
async def get_connected_wallet(
    fid: Optional[str] = Query(default=None),
    services: Services = Depends(get_services),
) -> JSONResponse:
    if not fid or not fid.strip():
        return error_response(
            ErrorInfo(kind=ErrorKind.VALIDATION_ERROR, message="Missing fid parameter")
        )
    try:
        record = await services.store.get(wallet_key(fid.strip()))
    except Exception as exc:  # noqa: BLE001
        return store_error(exc, services.settings.secret_values)
    if not record:
        return JSONResponse(status_code=404, content={"success": False, "error": "Wallet not found"})
    return JSONResponse(content={"success": True, "data": record})


@router.options("/connectWallet")
async def connect_wallet_preflight() -> Response:
    return Response(status_code=204)
