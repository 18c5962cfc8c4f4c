"""
Tests for the Deployment Executor: retry bound, backoff, configuration gate
and transaction hash handling.
"""

import asyncio

import httpx
import pytest

from app.core.deployment.errors import ErrorKind, TerminalDeploymentError
from app.core.deployment.executor import DeploymentExecutor, check_interface_addresses
from app.core.deployment.models import (
    CastAuthor,
    CastContext,
    DeploymentSubmission,
    WalletResolution,
    WalletSource,
)
from app.core.deployment.network import BASE_NETWORKS
from app.core.deployment.result import Err, Ok
from app.core.deployment.retry import RetryPolicy

from conftest import (
    INTERFACE_ADMIN,
    INTERFACE_REWARD_RECIPIENT,
    TOKEN_ADDRESS,
    TX_HASH,
    USER_ADDRESS,
    FakeChainClient,
    RecordingSleep,
    make_request,
)

ZERO = "0x" + "0" * 40
IMAGE_URL = "ipfs://bafytestcid"

NETWORK = BASE_NETWORKS["testnet"]
WALLET = WalletResolution(
    admin_address=USER_ADDRESS,
    reward_recipient_address=USER_ADDRESS,
    source=WalletSource.USER_WALLET,
)


def make_executor(chain, sleep=None, max_attempts=3, **overrides):
    kwargs = dict(
        interface_admin=INTERFACE_ADMIN,
        interface_reward_recipient=INTERFACE_REWARD_RECIPIENT,
        quote_token="0x4200000000000000000000000000000000000006",
        initial_market_cap="0.1",
        policy=RetryPolicy(max_attempts=max_attempts, base_delay_seconds=1.0),
        sleep=sleep or RecordingSleep(),
    )
    kwargs.update(overrides)
    return DeploymentExecutor(chain, **kwargs)


def ok_submission(tx_hash=TX_HASH):
    return DeploymentSubmission(token_address=TOKEN_ADDRESS, tx_hash=tx_hash)


# =============================================================================
# Retry bound
# =============================================================================

class TestRetryBound:

    @pytest.mark.asyncio
    async def test_every_attempt_fails(self):
        chain = FakeChainClient([RuntimeError("service down")])
        sleep = RecordingSleep()

        result = await make_executor(chain, sleep).deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.SDK_DEPLOYMENT_ERROR
        assert result.error.message == "Token deployment failed after 3 attempts"
        assert result.error.details == "service down"
        assert result.error.debug["attempts"] == 3
        assert chain.submit_calls == 3
        assert sleep.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [1, 2, 3])
    async def test_success_on_attempt_k(self, k):
        outcomes = [RuntimeError("flaky")] * (k - 1) + [ok_submission()]
        chain = FakeChainClient(outcomes)

        result = await make_executor(chain).deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert isinstance(result, Ok)
        assert result.value.attempts == k
        assert result.value.token_address == TOKEN_ADDRESS
        assert chain.submit_calls == k

    @pytest.mark.asyncio
    async def test_configured_bound_is_respected(self):
        chain = FakeChainClient([RuntimeError("down")])

        result = await make_executor(chain, max_attempts=5).deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert isinstance(result, Err)
        assert chain.submit_calls == 5

    @pytest.mark.asyncio
    async def test_terminal_service_error_is_not_retried(self):
        chain = FakeChainClient([TerminalDeploymentError("bad request", code="HTTP_400")])

        result = await make_executor(chain).deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert isinstance(result, Err)
        assert result.error.code == "HTTP_400"
        assert chain.submit_calls == 1

    @pytest.mark.asyncio
    async def test_transport_failures_are_recorded_as_network_errors(self):
        chain = FakeChainClient([httpx.ConnectError("refused")])

        result = await make_executor(chain).deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert result.error.kind == ErrorKind.SDK_DEPLOYMENT_ERROR
        assert result.error.debug["lastErrorKind"] == ErrorKind.NETWORK_ERROR.value

    @pytest.mark.asyncio
    async def test_timeout_is_retried(self):
        class SlowChain(FakeChainClient):
            async def submit_deployment(self, params):
                self.submissions.append(params)
                if len(self.submissions) == 1:
                    await asyncio.sleep(1)
                return ok_submission()

        chain = SlowChain()
        executor = make_executor(chain, request_timeout_seconds=0.01)

        result = await executor.deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert isinstance(result, Ok)
        assert chain.submit_calls == 2


# =============================================================================
# Configuration gate
# =============================================================================

class TestConfigurationGate:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "admin,recipient",
        [(ZERO, INTERFACE_REWARD_RECIPIENT), (INTERFACE_ADMIN, ZERO), (ZERO, ZERO), ("", ""), ("0x123", INTERFACE_ADMIN)],
    )
    async def test_bad_interface_addresses_abort_before_any_attempt(self, admin, recipient):
        chain = FakeChainClient()
        executor = make_executor(chain, interface_admin=admin, interface_reward_recipient=recipient)

        result = await executor.deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.CONFIGURATION_ERROR
        assert chain.submit_calls == 0

    def test_valid_addresses_pass(self):
        assert check_interface_addresses(INTERFACE_ADMIN, INTERFACE_REWARD_RECIPIENT) is None


# =============================================================================
# Transaction hash and receipt
# =============================================================================

class TestTransactionHash:

    @pytest.mark.asyncio
    async def test_receipt_awaited_for_returned_hash(self):
        chain = FakeChainClient([ok_submission()])

        result = await make_executor(chain).deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert result.value.tx_hash == TX_HASH
        assert chain.receipt_requests == [TX_HASH]
        assert chain.scans == []

    @pytest.mark.asyncio
    async def test_missing_hash_triggers_chain_scan(self):
        found = "0x" + "cd" * 32
        chain = FakeChainClient([ok_submission(tx_hash=None)], scan_result=found, block=500)

        result = await make_executor(chain).deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert result.value.tx_hash == found
        assert chain.scans == [(TOKEN_ADDRESS, 500)]
        assert chain.receipt_requests == [found]

    @pytest.mark.asyncio
    async def test_hash_stays_null_when_scan_finds_nothing(self):
        chain = FakeChainClient([ok_submission(tx_hash=None)], scan_result=None)

        result = await make_executor(chain).deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert isinstance(result, Ok)
        assert result.value.tx_hash is None
        assert chain.receipt_requests == []

    @pytest.mark.asyncio
    async def test_reverted_receipt_is_retried(self):
        chain = FakeChainClient([ok_submission()], receipt_statuses=["reverted", "success"])

        result = await make_executor(chain).deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert isinstance(result, Ok)
        assert chain.submit_calls == 2

    @pytest.mark.asyncio
    async def test_revert_on_every_attempt(self):
        chain = FakeChainClient([ok_submission()], receipt_status="reverted")

        result = await make_executor(chain).deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert isinstance(result, Err)
        assert result.error.code == "TX_REVERTED"
        assert chain.submit_calls == 3

    @pytest.mark.asyncio
    async def test_supplied_transaction_id_is_kept(self):
        chain = FakeChainClient()

        result = await make_executor(chain).deploy(
            make_request(), NETWORK, WALLET, IMAGE_URL, transaction_id="tx_0123456789abcdef"
        )

        assert result.value.transaction_id == "tx_0123456789abcdef"


# =============================================================================
# Parameters sent to the deployment service
# =============================================================================

class TestParams:

    def test_rewards_use_resolved_wallet_and_interface(self):
        executor = make_executor(FakeChainClient())
        params = executor.build_params(make_request(fee_percentage=55), NETWORK, WALLET, IMAGE_URL)
        payload = params.to_dict()

        assert payload["chainId"] == 84532
        assert payload["image"] == IMAGE_URL
        assert payload["pool"] == {
            "quoteToken": "0x4200000000000000000000000000000000000006",
            "initialMarketCap": "0.1",
        }
        assert payload["rewardsConfig"] == {
            "creatorReward": 55,
            "creatorAdmin": USER_ADDRESS,
            "creatorRewardRecipient": USER_ADDRESS,
            "interfaceAdmin": INTERFACE_ADMIN,
            "interfaceRewardRecipient": INTERFACE_REWARD_RECIPIENT,
        }
        assert "context" not in payload

    def test_cast_context_becomes_interface_context(self):
        cast = CastContext(cast_id="0xcast", author=CastAuthor(fid="42", username="alice"))
        executor = make_executor(FakeChainClient())

        params = executor.build_params(make_request(cast_context=cast), NETWORK, WALLET, IMAGE_URL)

        assert params.context == {
            "interface": "Clanker Tools",
            "platform": "Farcaster",
            "messageId": "0xcast",
            "id": "0xcast",
        }

    @pytest.mark.asyncio
    async def test_attempt_count_on_record(self):
        chain = FakeChainClient([RuntimeError("one"), ok_submission()])
        executor = make_executor(chain)

        result = await executor.deploy(make_request(), NETWORK, WALLET, IMAGE_URL)

        assert result.value.attempts == 2
