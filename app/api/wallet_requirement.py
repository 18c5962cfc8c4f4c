from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..container import Services
from ..types.responses import WalletRequirementResponse
from .deps import get_services

router = APIRouter(prefix="/api/config")


@router.get("/wallet-requirement")
async def get_wallet_requirement(services: Services = Depends(get_services)) -> JSONResponse:
    body = WalletRequirementResponse(
        require_wallet=services.settings.require_wallet_for_simple_launch
    )
    return JSONResponse(
        content=body.to_json(),
        headers={"Cache-Control": "public, max-age=3600"},
    )
