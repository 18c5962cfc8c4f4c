"""
Blockchain client: the external token deployment service plus the JSON-RPC
reads needed to confirm a deployment.

Deployment service responses come in several shapes (a bare address string,
or an object using ``address``/``tokenAddress``/``contractAddress`` and
``txHash``/``transactionHash``/``hash``). ``normalize_submission`` turns all
of them into one ``DeploymentSubmission`` before anything else sees them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..core.deployment.errors import (
    InvalidDeploymentResponse,
    ReceiptTimeoutError,
    RetryableDeploymentError,
    TerminalDeploymentError,
)
from ..core.deployment.models import DeploymentParams, DeploymentSubmission, TransactionReceipt
from .base import BlockchainClient

logger = logging.getLogger(__name__)

_ADDRESS_FIELDS = ("address", "tokenAddress", "contractAddress")
_HASH_FIELDS = ("txHash", "transactionHash", "hash")

# Client errors worth another attempt
_RETRYABLE_STATUS = {408, 425, 429}


def _first_str(data: Dict[str, Any], fields: tuple) -> Optional[str]:
    for name in fields:
        value = data.get(name)
        if isinstance(value, str) and value:
            return value
    return None


def normalize_submission(raw: Any) -> DeploymentSubmission:
    if isinstance(raw, str) and raw:
        return DeploymentSubmission(token_address=raw)
    if isinstance(raw, dict):
        # Some services wrap the payload
        body = raw.get("data") if isinstance(raw.get("data"), dict) else raw
        token_address = _first_str(body, _ADDRESS_FIELDS)
        tx_hash = _first_str(body, _HASH_FIELDS)
        if token_address or tx_hash:
            return DeploymentSubmission(token_address=token_address, tx_hash=tx_hash)
    raise InvalidDeploymentResponse()


class HttpBlockchainClient(BlockchainClient):
    name = "chain"
    timeout_s = 30

    def __init__(
        self,
        *,
        service_url: str,
        service_api_key: str = "",
        rpc_url: str,
        timeout_s: Optional[int] = None,
        poll_interval_s: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.service_url = service_url.rstrip("/")
        self._api_key = service_api_key
        self.rpc_url = rpc_url
        if timeout_s is not None:
            self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self._transport = transport
        self._rpc_id = 0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)

    def _service_headers(self) -> Dict[str, str]:
        headers = {"accept": "application/json", "content-type": "application/json"}
        if self._api_key:
            headers["authorization"] = f"Bearer {self._api_key}"
        return headers

    async def health_check(self) -> Dict[str, Any]:
        try:
            block = await self.latest_block()
            return {"status": "healthy", "latestBlock": block}
        except Exception as e:  # noqa: BLE001
            return {"status": "error", "reason": str(e)}

    # ---------------------------
    # Deployment service
    # ---------------------------
    async def submit_deployment(self, params: DeploymentParams) -> DeploymentSubmission:
        if not self.service_url:
            raise TerminalDeploymentError("Deployment service URL is not configured", code="NOT_CONFIGURED")

        async with self._client() as client:
            try:
                response = await client.post(
                    f"{self.service_url}/deployments",
                    json=params.to_dict(),
                    headers=self._service_headers(),
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                message = _error_message(exc.response)
                if 400 <= status < 500 and status not in _RETRYABLE_STATUS:
                    raise TerminalDeploymentError(message, code=f"HTTP_{status}") from exc
                raise RetryableDeploymentError(message, code=f"HTTP_{status}") from exc

            try:
                data = response.json()
            except ValueError as exc:
                raise InvalidDeploymentResponse("Deployment service returned a non-JSON body") from exc

        submission = normalize_submission(data)
        logger.info(
            "Deployment service accepted %s (token=%s, tx=%s)",
            params.symbol,
            submission.token_address,
            submission.tx_hash,
        )
        return submission

    # ---------------------------
    # JSON-RPC
    # ---------------------------
    async def _rpc(self, method: str, params: List[Any]) -> Any:
        self._rpc_id += 1
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": self._rpc_id}
        async with self._client() as client:
            response = await client.post(
                self.rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
            data = response.json()

        if "error" in data:
            error = data["error"] or {}
            raise RetryableDeploymentError(
                f"RPC error from {method}: {error.get('message', error)}",
                code=str(error.get("code")) if isinstance(error, dict) and "code" in error else None,
            )
        return data.get("result")

    async def latest_block(self) -> int:
        return int(await self._rpc("eth_blockNumber", []), 16)

    async def wait_for_receipt(
        self, tx_hash: str, *, confirmations: int = 1, timeout: float = 120.0
    ) -> TransactionReceipt:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            raw = await self._rpc("eth_getTransactionReceipt", [tx_hash])
            if raw:
                block_number = int(raw["blockNumber"], 16)
                confirmed = confirmations <= 1 or (
                    await self.latest_block() - block_number + 1 >= confirmations
                )
                if confirmed:
                    return TransactionReceipt(
                        tx_hash=tx_hash,
                        status="success" if int(raw.get("status", "0x1"), 16) == 1 else "reverted",
                        block_number=block_number,
                        contract_address=raw.get("contractAddress"),
                    )

            if loop.time() + self.poll_interval_s > deadline:
                raise ReceiptTimeoutError(tx_hash, timeout)
            await asyncio.sleep(self.poll_interval_s)

    async def find_deployment_transaction(self, token_address: str, from_block: int) -> Optional[str]:
        logs = await self._rpc(
            "eth_getLogs",
            [{"address": token_address, "fromBlock": hex(from_block), "toBlock": "latest"}],
        )
        for entry in logs or []:
            tx_hash = entry.get("transactionHash")
            if tx_hash:
                return tx_hash
        return None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"Deployment service returned HTTP {response.status_code}"


__all__ = ["HttpBlockchainClient", "normalize_submission"]
