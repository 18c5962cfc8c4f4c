"""Explicit construction of the service's collaborators."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from .config import Settings
from .core.deployment import (
    DeploymentExecutor,
    DeploymentPipeline,
    RetryPolicy,
    WalletResolver,
    pipeline_config_from_settings,
    resolve_network,
)
from .core.deployment.result import Ok
from .core.transactions import DeploymentQueue, TransactionTracker
from .providers.base import BlockchainClient, ImageUploader, KeyValueStore
from .providers.chain import HttpBlockchainClient
from .providers.kv_store import build_key_value_store
from .providers.pinata import PinataUploader

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    store: KeyValueStore
    uploader: ImageUploader
    chain: BlockchainClient
    tracker: TransactionTracker
    pipeline: DeploymentPipeline
    queue: DeploymentQueue

    async def close(self) -> None:
        await self.queue.stop()
        for provider in (self.chain, self.uploader, self.store):
            try:
                await provider.close()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to close %s: %s", provider.name, exc, exc_info=True)


def _rpc_url(settings: Settings) -> str:
    network = resolve_network(settings.base_network, settings.rpc_url_override)
    if isinstance(network, Ok):
        return network.value.rpc_url
    # An invalid network is reported per request by the pipeline
    return settings.rpc_url_override


def build_services(
    settings: Settings,
    *,
    store: Optional[KeyValueStore] = None,
    uploader: Optional[ImageUploader] = None,
    chain: Optional[BlockchainClient] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Services:
    store = store or build_key_value_store(settings.redis_url, timeout_s=settings.request_timeout_seconds)
    uploader = uploader or PinataUploader(
        settings.pinata_jwt.get_secret_value(), timeout_s=settings.request_timeout_seconds
    )
    chain = chain or HttpBlockchainClient(
        service_url=settings.deployment_service_url,
        service_api_key=settings.deployment_service_api_key.get_secret_value(),
        rpc_url=_rpc_url(settings),
        timeout_s=settings.request_timeout_seconds,
    )

    executor = DeploymentExecutor(
        chain,
        interface_admin=settings.interface_admin,
        interface_reward_recipient=settings.interface_reward_recipient,
        quote_token=settings.quote_token_address,
        initial_market_cap=settings.initial_market_cap,
        policy=RetryPolicy(
            max_attempts=settings.deploy_max_retries,
            base_delay_seconds=settings.deploy_retry_base_delay_seconds,
        ),
        confirmations=settings.deploy_confirmations,
        receipt_timeout_seconds=settings.receipt_timeout_seconds,
        request_timeout_seconds=settings.request_timeout_seconds,
        sleep=sleep,
    )
    tracker = TransactionTracker(store)
    pipeline = DeploymentPipeline(
        pipeline_config_from_settings(settings),
        wallet_resolver=WalletResolver(store),
        uploader=uploader,
        executor=executor,
        tracker=tracker,
    )
    queue = DeploymentQueue(
        pipeline,
        store,
        max_size=settings.queue_max_size,
        job_ttl_seconds=settings.queue_job_ttl_seconds,
        drain_interval_seconds=settings.queue_drain_interval_seconds,
    )
    return Services(
        settings=settings,
        store=store,
        uploader=uploader,
        chain=chain,
        tracker=tracker,
        pipeline=pipeline,
        queue=queue,
    )


__all__ = ["Services", "build_services"]
