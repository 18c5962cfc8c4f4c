from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..container import Services
from ..core.deployment.errors import ErrorInfo, ErrorKind
from .deps import error_response, get_services, store_error

router = APIRouter(prefix="/api/transaction")


def is_valid_transaction_id(transaction_id: str) -> bool:
    return transaction_id.startswith("tx_") and len(transaction_id) >= 10


@router.get("/{transaction_id}")
async def get_transaction_status(
    transaction_id: str,
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Status of a queued deployment."""
    if not is_valid_transaction_id(transaction_id):
        return error_response(
            ErrorInfo(kind=ErrorKind.VALIDATION_ERROR, message="Invalid transaction ID format")
        )

    try:
        status = await services.queue.get_status(transaction_id)
    except Exception as exc:  # noqa: BLE001
        return store_error(exc, services.settings.secret_values)

    if status is None:
        return JSONResponse(status_code=404, content={"success": False, "error": "Transaction not found"})
    return JSONResponse(content={"success": True, **status})
