"""
Transaction Tracker

Bookkeeping after a successful deployment. Every write is additive, keyed by
transaction hash, requester or token address, and best-effort: the token
already exists on-chain once this runs, so a failed write is logged and
dropped rather than reported.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..deployment.models import DeploymentReceipt, DeploymentRequest

if TYPE_CHECKING:
    from ...providers.base import KeyValueStore

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60
TX_STATUS_TTL = DAY_SECONDS
USER_TOKENS_TTL = 365 * DAY_SECONDS
DEPLOYMENT_TTL = 365 * DAY_SECONDS
CAST_LINK_TTL = 30 * DAY_SECONDS

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50


def tx_key(tx_hash: str) -> str:
    return f"tx:{tx_hash}"


def user_tokens_key(fid: str) -> str:
    return f"user:tokens:{fid}"


def deployment_key(token_address: str) -> str:
    return f"deployment:{token_address.lower()}"


def cast_link_key(token_address: str) -> str:
    return f"token:{token_address.lower()}:cast"


class TransactionTracker:
    def __init__(self, store: "KeyValueStore") -> None:
        self._store = store

    async def record_success(
        self,
        receipt: DeploymentReceipt,
        request: DeploymentRequest,
        interface: Optional[Dict[str, Any]] = None,
    ) -> List[str]:
        """Persist everything known about a finished deployment.

        Returns the names of the steps that failed; never raises.
        """
        record = receipt.record
        now = datetime.now(timezone.utc).isoformat()
        failed: List[str] = []

        steps = [
            ("transaction_status", lambda: self._save_tx_status(receipt, now)),
            ("user_tokens", lambda: self._append_user_token(receipt, request, now)),
            ("deployment_record", lambda: self._save_deployment(receipt, request, interface, now)),
            ("cast_link", lambda: self._save_cast_link(receipt, request, now)),
        ]
        for name, step in steps:
            try:
                await step()
            except Exception as exc:  # noqa: BLE001
                failed.append(name)
                logger.warning(
                    "Post-deployment %s write failed for %s: %s",
                    name,
                    record.token_address,
                    exc,
                    exc_info=True,
                )

        if failed:
            logger.warning("Deployment %s recorded partially", record.transaction_id)
        return failed

    async def _save_tx_status(self, receipt: DeploymentReceipt, now: str) -> None:
        record = receipt.record
        if not record.tx_hash:
            return
        await self._store.set(
            tx_key(record.tx_hash),
            {
                "status": "confirmed",
                "transactionId": record.transaction_id,
                "tokenAddress": record.token_address,
                "chainId": receipt.network.chain_id,
                "timestamp": now,
            },
            TX_STATUS_TTL,
        )

    async def _append_user_token(
        self, receipt: DeploymentReceipt, request: DeploymentRequest, now: str
    ) -> None:
        if not request.requester_id:
            return
        key = user_tokens_key(request.requester_id)
        existing = await self._store.get(key)
        tokens = existing if isinstance(existing, list) else []

        address = receipt.record.token_address
        entry = {
            "address": address,
            "name": request.name,
            "symbol": request.symbol,
            "imageUrl": receipt.image_url,
            "txHash": receipt.record.tx_hash,
            "network": receipt.network.name,
            "chainId": receipt.network.chain_id,
            "createdAt": now,
        }
        tokens = [entry] + [
            token
            for token in tokens
            if isinstance(token, dict) and str(token.get("address", "")).lower() != address.lower()
        ]
        await self._store.set(key, tokens, USER_TOKENS_TTL)

    async def _save_deployment(
        self,
        receipt: DeploymentReceipt,
        request: DeploymentRequest,
        interface: Optional[Dict[str, Any]],
        now: str,
    ) -> None:
        record = receipt.record
        data: Dict[str, Any] = {
            "tokenAddress": record.token_address,
            "name": request.name,
            "symbol": request.symbol,
            "imageUrl": receipt.image_url,
            "txHash": record.tx_hash,
            "transactionId": record.transaction_id,
            "network": receipt.network.name,
            "chainId": receipt.network.chain_id,
            "requesterFid": request.requester_id,
            "creatorAdmin": receipt.wallet.admin_address,
            "creatorRewardRecipient": receipt.wallet.reward_recipient_address,
            "walletSource": receipt.wallet.source.value,
            "creatorReward": receipt.creator_reward,
            "attempts": record.attempts,
            "deployedAt": now,
        }
        if interface:
            data.update(interface)
        if request.cast_context is not None:
            data["castContext"] = request.cast_context.to_dict()
        written = await self._store.set(
            deployment_key(record.token_address), data, DEPLOYMENT_TTL, only_if_absent=True
        )
        if not written:
            logger.info("Deployment record for %s already exists", record.token_address)

    async def _save_cast_link(
        self, receipt: DeploymentReceipt, request: DeploymentRequest, now: str
    ) -> None:
        cast = request.cast_context
        if cast is None:
            return
        await self._store.set(
            cast_link_key(receipt.record.token_address),
            {
                "castId": cast.cast_id,
                "parentCastId": cast.parent_cast_id,
                "authorFid": cast.author.fid,
                "authorUsername": cast.author.username,
                "linkedAt": now,
            },
            CAST_LINK_TTL,
            only_if_absent=True,
        )

    async def get_user_tokens(
        self, fid: str, cursor: Optional[str] = None, limit: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """Newest-first page of a requester's tokens and the next cursor."""
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        try:
            offset = max(int(cursor), 0) if cursor else 0
        except ValueError:
            offset = 0

        stored = await self._store.get(user_tokens_key(fid))
        tokens = stored if isinstance(stored, list) else []
        page = tokens[offset : offset + limit]
        next_offset = offset + len(page)
        next_cursor = str(next_offset) if next_offset < len(tokens) else None
        return page, next_cursor

    async def get_deployment(self, token_address: str) -> Optional[Dict[str, Any]]:
        record = await self._store.get(deployment_key(token_address))
        return record if isinstance(record, dict) else None


__all__ = [
    "TransactionTracker",
    "tx_key",
    "user_tokens_key",
    "deployment_key",
    "cast_link_key",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
]
