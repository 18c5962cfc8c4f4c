import asyncio
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse, Response

from ..container import Services
from ..core.deployment.models import ImageBlob, RawDeploymentInput
from ..core.deployment.result import Err
from ..core.transactions.models import JobPriority
from ..types.responses import DeploySuccessResponse, QueuedDeployResponse
from .deps import error_response, get_services

router = APIRouter(prefix="/api/deploy")

logger = structlog.stdlib.get_logger(__name__)

ALLOWED_METHODS = "POST, OPTIONS"


def status_url(transaction_id: str) -> str:
    return f"/api/transaction/{transaction_id}"


async def _read_image(image: Optional[UploadFile]) -> Optional[ImageBlob]:
    if image is None:
        return None
    content = await image.read()
    if not content and not image.filename:
        return None
    return ImageBlob(content=content, content_type=image.content_type or "", filename=image.filename)


def _parse_priority(value: Optional[str]) -> JobPriority:
    try:
        return JobPriority((value or "").lower())
    except ValueError:
        return JobPriority.NORMAL


@router.post("/simple")
async def deploy_simple(
    name: Optional[str] = Form(default=None),
    symbol: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    fid: Optional[str] = Form(default=None),
    cast_context: Optional[str] = Form(default=None, alias="castContext"),
    creator_fee_percentage: Optional[str] = Form(default=None, alias="creatorFeePercentage"),
    queued: bool = Query(default=False, description="Enqueue and return a job id instead of waiting"),
    priority: Optional[str] = Query(default=None, description="Queue priority: high or normal"),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Deploy a token from a multipart form."""
    raw = RawDeploymentInput(
        name=name,
        symbol=symbol,
        image=await _read_image(image),
        fid=fid,
        cast_context=cast_context,
        creator_fee_percentage=creator_fee_percentage,
    )

    validated = services.pipeline.validate(raw)
    if isinstance(validated, Err):
        return error_response(validated.error)
    request = validated.value

    if queued:
        # Refuse now what the job could never deploy
        checked = await services.pipeline.preflight(request)
        if isinstance(checked, Err):
            return error_response(checked.error)

        job_priority = _parse_priority(priority)
        enqueued = await services.queue.enqueue(
            request,
            metadata={"name": request.name, "symbol": request.symbol, "fid": request.requester_id},
            priority=job_priority,
        )
        if isinstance(enqueued, Err):
            return error_response(enqueued.error)
        body = QueuedDeployResponse(
            transaction_id=enqueued.value,
            status_url=status_url(enqueued.value),
            priority=job_priority.value,
        )
        return JSONResponse(content=body.to_json())

    # A client disconnect abandons the response, not the deployment
    result = await asyncio.shield(services.pipeline.run(request))
    if isinstance(result, Err):
        logger.warning("deployment_failed", kind=result.error.kind.value, error=result.error.message)
        return error_response(result.error)

    receipt = result.value
    body = DeploySuccessResponse(
        token_address=receipt.record.token_address,
        tx_hash=receipt.record.tx_hash,
        image_url=receipt.image_url,
        network=receipt.network.name,
        chain_id=receipt.network.chain_id,
        transaction_id=receipt.record.transaction_id,
    )
    return JSONResponse(content=body.to_json())


@router.options("/simple")
async def deploy_simple_preflight() -> Response:
    return Response(status_code=204)


@router.api_route("/simple", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def deploy_simple_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={"success": False, "error": "Method not allowed"},
        headers={"Allow": ALLOWED_METHODS},
    )
