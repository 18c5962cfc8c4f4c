"""
Deployment pipeline.

Validator → Network Selector → Wallet Resolver → image upload → Deployment
Executor → Transaction Tracker. Every stage returns a ``Result``; the first
``Err`` ends the run. Validation and configuration failures happen before any
side effect. Bookkeeping after a successful deployment never turns the
outcome into a failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import structlog

from .errors import ErrorInfo, ErrorKind
from .executor import DeploymentExecutor, check_interface_addresses
from .models import (
    DeploymentReceipt,
    DeploymentRequest,
    NetworkConfig,
    RawDeploymentInput,
    WalletResolution,
)
from .network import resolve_network
from .result import Err, Ok, Result
from .validation import describe_request, validate_request
from .wallet import WalletResolver, operator_wallet_from_key

if TYPE_CHECKING:
    from ...providers.base import ImageUploader
    from ..transactions.tracker import TransactionTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineConfig:
    """Operator configuration consumed by the pipeline."""

    private_key: str
    network_name: str
    default_fee_percentage: int = 80
    require_user_wallet: bool = False
    rpc_url_override: str = ""
    secrets: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Preflight:
    """Network and creator wallet a request would deploy with."""

    network: NetworkConfig
    wallet: WalletResolution


def _unexpected_error(exc: Exception) -> ErrorInfo:
    return ErrorInfo(
        kind=ErrorKind.UNKNOWN_ERROR,
        message="An unexpected error occurred",
        details=f"{type(exc).__name__}: {exc}",
        user_message="Something went wrong. Please try again.",
    )


class DeploymentPipeline:
    """Orchestrates one token deployment from raw input to recorded result."""

    def __init__(
        self,
        config: PipelineConfig,
        *,
        wallet_resolver: WalletResolver,
        uploader: "ImageUploader",
        executor: DeploymentExecutor,
        tracker: "TransactionTracker",
    ) -> None:
        self.config = config
        self.wallet_resolver = wallet_resolver
        self.uploader = uploader
        self.executor = executor
        self.tracker = tracker

    def validate(self, raw: RawDeploymentInput) -> Result[DeploymentRequest, ErrorInfo]:
        result = validate_request(raw, self.config.default_fee_percentage)
        if isinstance(result, Err):
            logger.info("Rejected deployment request: %s", result.error.message)
        return result

    async def run(
        self,
        request: DeploymentRequest,
        *,
        transaction_id: Optional[str] = None,
    ) -> Result[DeploymentReceipt, ErrorInfo]:
        structlog.contextvars.bind_contextvars(token_symbol=request.symbol, fid=request.requester_id)
        try:
            result = await self._run(request, transaction_id)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected deployment pipeline failure")
            result = Err(_unexpected_error(exc))
        finally:
            structlog.contextvars.unbind_contextvars("token_symbol", "fid")

        if isinstance(result, Err):
            return Err(result.error.redacted(self.config.secrets))
        return result

    async def preflight(self, request: DeploymentRequest) -> Result[Preflight, ErrorInfo]:
        """Run the configuration and wallet policy stages without side effects.

        Lets callers that defer the deployment (the queue) refuse a request
        that could never succeed before accepting it.
        """
        try:
            result = await self._preflight(request)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected deployment preflight failure")
            result = Err(_unexpected_error(exc))

        if isinstance(result, Err):
            return Err(result.error.redacted(self.config.secrets))
        return result

    async def _preflight(self, request: DeploymentRequest) -> Result[Preflight, ErrorInfo]:
        network = resolve_network(self.config.network_name, self.config.rpc_url_override)
        if isinstance(network, Err):
            return network

        operator = operator_wallet_from_key(self.config.private_key)
        if isinstance(operator, Err):
            return operator

        config_error = check_interface_addresses(
            self.executor.interface_admin, self.executor.interface_reward_recipient
        )
        if config_error is not None:
            logger.error("Refusing to deploy %s: %s", request.symbol, config_error.details)
            return Err(config_error)

        wallet = await self.wallet_resolver.resolve(
            request.requester_id,
            operator.value,
            require_user_wallet=self.config.require_user_wallet,
        )
        if isinstance(wallet, Err):
            logger.info("Wallet resolution refused deployment: %s", wallet.error.kind.value)
            return wallet

        return Ok(Preflight(network=network.value, wallet=wallet.value))

    async def _run(
        self, request: DeploymentRequest, transaction_id: Optional[str]
    ) -> Result[DeploymentReceipt, ErrorInfo]:
        logger.info("Starting deployment %s", describe_request(request))

        checked = await self._preflight(request)
        if isinstance(checked, Err):
            return checked
        network = checked.value.network
        wallet = checked.value.wallet

        try:
            image_url = await self.uploader.upload(request.image)
        except Exception as exc:  # noqa: BLE001
            logger.error("Image upload failed: %s", exc, exc_info=True)
            return Err(
                ErrorInfo(
                    kind=ErrorKind.UPLOAD_ERROR,
                    message="Failed to upload image",
                    details=str(exc),
                    user_message="We could not upload your image. Please try again.",
                )
            )

        deployed = await self.executor.deploy(
            request,
            network,
            wallet,
            image_url,
            transaction_id=transaction_id,
        )
        if isinstance(deployed, Err):
            return deployed

        receipt = DeploymentReceipt(
            record=deployed.value,
            image_url=image_url,
            network=network,
            wallet=wallet,
            creator_reward=request.fee_percentage,
        )
        await self.tracker.record_success(receipt, request, interface=self._interface_summary())
        return Ok(receipt)

    def _interface_summary(self) -> Dict[str, Any]:
        return {
            "interfaceAdmin": self.executor.interface_admin,
            "interfaceRewardRecipient": self.executor.interface_reward_recipient,
        }


def pipeline_config_from_settings(settings: Any, secrets: Optional[Iterable[str]] = None) -> PipelineConfig:
    return PipelineConfig(
        private_key=settings.deployer_private_key.get_secret_value(),
        network_name=settings.base_network,
        default_fee_percentage=settings.creator_reward,
        require_user_wallet=settings.require_wallet_for_simple_launch,
        rpc_url_override=settings.rpc_url_override,
        secrets=list(settings.secret_values if secrets is None else secrets),
    )


__all__ = ["DeploymentPipeline", "PipelineConfig", "Preflight", "pipeline_config_from_settings"]
