from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..container import Services
from ..core.deployment.network import resolve_network
from ..core.deployment.result import Ok
from .deps import get_services

router = APIRouter()


@router.get("/healthz")
async def health_check(services: Services = Depends(get_services)) -> Dict[str, Any]:
    """Key-value store reachability and the configured network."""
    store_status = await services.store.health_check()

    network = resolve_network(services.settings.base_network, services.settings.rpc_url_override)
    if isinstance(network, Ok):
        network_status = {
            "status": "healthy",
            "name": network.value.name,
            "chainId": network.value.chain_id,
        }
    else:
        network_status = {"status": "error", "reason": network.error.message}

    all_healthy = store_status.get("status") == "healthy" and network_status["status"] == "healthy"
    return {
        "status": "healthy" if all_healthy else "degraded",
        "store": store_status,
        "network": network_status,
        "queue": {
            "running": services.queue.is_running,
            "pending": services.queue.pending_count,
        },
    }
