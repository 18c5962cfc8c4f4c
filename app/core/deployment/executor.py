"""
Deployment Executor

Submits one logical token deployment to the external deployment service under
a bounded retry policy, waits for on-chain confirmation and classifies the
terminal outcome.

Per attempt:
1. note the latest block (lower bound for the hash scan)
2. submit the deployment (bounded by the request timeout)
3. if no hash came back, scan the chain for the contract's creation event
4. if a hash is known, wait for the receipt; a revert fails the attempt

Identical concurrent requests are not deduplicated.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional

from .errors import (
    ErrorInfo,
    ErrorKind,
    InvalidDeploymentResponse,
    TransactionRevertedError,
    attempt_error_kind,
    capture_failure,
)
from .models import (
    AttemptOutcome,
    DeploymentAttempt,
    DeploymentParams,
    DeploymentRequest,
    NetworkConfig,
    RewardsConfig,
    TransactionRecord,
    WalletResolution,
)
from .result import Err, Ok, Result
from .retry import RetryPolicy, default_is_retryable, with_retry
from .wallet import is_valid_address, is_zero_address

if TYPE_CHECKING:
    from ...providers.base import BlockchainClient

logger = logging.getLogger(__name__)

INTERFACE_NAME = "Clanker Tools"
INTERFACE_PLATFORM = "Farcaster"


def new_transaction_id() -> str:
    return f"tx_{secrets.token_hex(8)}"


def check_interface_addresses(interface_admin: str, interface_reward_recipient: str) -> Optional[ErrorInfo]:
    """Operator interface addresses must be set, well formed and non-zero."""
    problems = []
    for label, value in (
        ("INTERFACE_ADMIN", interface_admin),
        ("INTERFACE_REWARD_RECIPIENT", interface_reward_recipient),
    ):
        if not value:
            problems.append(f"{label} is not set")
        elif not is_valid_address(value):
            problems.append(f"{label} is not a valid address")
        elif is_zero_address(value):
            problems.append(f"{label} is the zero address")
    if not problems:
        return None
    return ErrorInfo(
        kind=ErrorKind.CONFIGURATION_ERROR,
        message="Server configuration error",
        details="; ".join(problems),
        user_message="Deployment is temporarily unavailable",
        debug={"step": "interface_address_validation"},
    )


class DeploymentExecutor:
    """Runs deployment attempts against a ``BlockchainClient``."""

    def __init__(
        self,
        client: "BlockchainClient",
        *,
        interface_admin: str,
        interface_reward_recipient: str,
        quote_token: str,
        initial_market_cap: str,
        policy: Optional[RetryPolicy] = None,
        confirmations: int = 1,
        receipt_timeout_seconds: float = 120.0,
        request_timeout_seconds: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.interface_admin = interface_admin
        self.interface_reward_recipient = interface_reward_recipient
        self.quote_token = quote_token
        self.initial_market_cap = initial_market_cap
        self.policy = policy or RetryPolicy()
        self.confirmations = max(confirmations, 1)
        self.receipt_timeout_seconds = receipt_timeout_seconds
        self.request_timeout_seconds = request_timeout_seconds
        self._sleep = sleep

    def build_params(
        self,
        request: DeploymentRequest,
        network: NetworkConfig,
        wallet: WalletResolution,
        image_url: str,
    ) -> DeploymentParams:
        context = None
        if request.cast_context is not None:
            cast = request.cast_context
            context = {
                "interface": INTERFACE_NAME,
                "platform": INTERFACE_PLATFORM,
                "messageId": cast.cast_id,
                "id": cast.parent_cast_id or cast.cast_id,
            }
        return DeploymentParams(
            name=request.name,
            symbol=request.symbol,
            image=image_url,
            chain_id=network.chain_id,
            quote_token=self.quote_token,
            initial_market_cap=self.initial_market_cap,
            rewards=RewardsConfig(
                creator_reward=request.fee_percentage,
                creator_admin=wallet.admin_address,
                creator_reward_recipient=wallet.reward_recipient_address,
                interface_admin=self.interface_admin,
                interface_reward_recipient=self.interface_reward_recipient,
            ),
            context=context,
        )

    async def deploy(
        self,
        request: DeploymentRequest,
        network: NetworkConfig,
        wallet: WalletResolution,
        image_url: str,
        *,
        transaction_id: Optional[str] = None,
    ) -> Result[TransactionRecord, ErrorInfo]:
        config_error = check_interface_addresses(self.interface_admin, self.interface_reward_recipient)
        if config_error is not None:
            logger.error("Refusing to deploy %s: %s", request.symbol, config_error.details)
            return Err(config_error)

        params = self.build_params(request, network, wallet, image_url)
        attempts: List[DeploymentAttempt] = []

        async def attempt(number: int) -> TransactionRecord:
            entry = DeploymentAttempt(attempt_number=number, started_at=datetime.now(timezone.utc))
            attempts.append(entry)
            try:
                token_address, tx_hash = await self._attempt(params)
            except Exception as exc:
                failure = capture_failure(exc)
                final = number >= self.policy.max_attempts or not default_is_retryable(exc)
                entry.outcome = AttemptOutcome.TERMINAL_FAILURE if final else AttemptOutcome.RETRYABLE_FAILURE
                entry.error_info = ErrorInfo(
                    kind=attempt_error_kind(exc),
                    message=failure.message,
                    code=failure.code,
                    cause=failure.cause,
                )
                raise
            entry.outcome = AttemptOutcome.SUCCESS
            return TransactionRecord(
                transaction_id=transaction_id or new_transaction_id(),
                token_address=token_address,
                tx_hash=tx_hash,
                requester_id=request.requester_id,
                created_at=datetime.now(timezone.utc),
                attempts=number,
            )

        outcome = await with_retry(
            attempt,
            self.policy,
            sleep=self._sleep,
            logger=logger,
            operation_name=f"Deployment of {request.symbol}",
        )

        if outcome.success and outcome.value is not None:
            logger.info(
                "Deployed %s at %s on %s after %d attempt(s)",
                request.symbol,
                outcome.value.token_address,
                network.name,
                len(attempts),
            )
            return Ok(outcome.value)

        return Err(self._terminal_error(outcome.error, attempts))

    async def _attempt(self, params: DeploymentParams) -> tuple[str, Optional[str]]:
        from_block = await asyncio.wait_for(self.client.latest_block(), self.request_timeout_seconds)
        submission = await asyncio.wait_for(
            self.client.submit_deployment(params), self.request_timeout_seconds
        )
        token_address = submission.token_address
        tx_hash = submission.tx_hash

        if not tx_hash and token_address:
            tx_hash = await asyncio.wait_for(
                self.client.find_deployment_transaction(token_address, from_block),
                self.request_timeout_seconds,
            )
            if not tx_hash:
                logger.warning("No creation transaction found yet for %s", token_address)

        if tx_hash:
            receipt = await self.client.wait_for_receipt(
                tx_hash,
                confirmations=self.confirmations,
                timeout=self.receipt_timeout_seconds,
            )
            if receipt.reverted:
                raise TransactionRevertedError(tx_hash)
            if not token_address and receipt.contract_address:
                token_address = receipt.contract_address

        if not token_address:
            raise InvalidDeploymentResponse("No token address available after deployment")

        return token_address, tx_hash

    def _terminal_error(
        self, error: Optional[BaseException], attempts: List[DeploymentAttempt]
    ) -> ErrorInfo:
        failure = capture_failure(error) if error is not None else None
        last = attempts[-1].error_info if attempts else None
        return ErrorInfo(
            kind=ErrorKind.SDK_DEPLOYMENT_ERROR,
            message=f"Token deployment failed after {len(attempts)} attempts",
            code=failure.code if failure else None,
            cause=failure.cause if failure else None,
            details=failure.message if failure else None,
            user_message="Token deployment failed. Please try again later.",
            debug={
                "attempts": len(attempts),
                "maxRetries": self.policy.max_attempts,
                "errorName": failure.name if failure else None,
                "lastErrorKind": last.kind.value if last else None,
            },
        )


__all__ = [
    "DeploymentExecutor",
    "check_interface_addresses",
    "new_transaction_id",
]
