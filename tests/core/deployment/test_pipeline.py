"""
End-to-end pipeline tests against fake collaborators.
"""

import pytest
from unittest.mock import AsyncMock

from app.core.deployment.errors import ErrorKind, REDACTED
from app.core.deployment.executor import DeploymentExecutor
from app.core.deployment.models import WalletSource
from app.core.deployment.pipeline import DeploymentPipeline, PipelineConfig
from app.core.deployment.result import Err, Ok
from app.core.deployment.retry import RetryPolicy
from app.core.deployment.wallet import ZERO_ADDRESS, WalletResolver
from app.core.transactions.tracker import TransactionTracker

from conftest import (
    INTERFACE_ADMIN,
    INTERFACE_REWARD_RECIPIENT,
    TEST_PRIVATE_KEY,
    TOKEN_ADDRESS,
    TX_HASH,
    USER_ADDRESS,
    FailingStore,
    FakeChainClient,
    FakeStore,
    FakeUploader,
    RecordingSleep,
    make_request,
)


def build_pipeline(store=None, uploader=None, chain=None, tracker=None, interface_admin=INTERFACE_ADMIN, **config):
    store = store or FakeStore()
    chain = chain or FakeChainClient()
    values = dict(
        private_key=TEST_PRIVATE_KEY,
        network_name="testnet",
        secrets=[TEST_PRIVATE_KEY, TEST_PRIVATE_KEY[2:]],
    )
    values.update(config)
    executor = DeploymentExecutor(
        chain,
        interface_admin=interface_admin,
        interface_reward_recipient=INTERFACE_REWARD_RECIPIENT,
        quote_token="0x4200000000000000000000000000000000000006",
        initial_market_cap="0.1",
        policy=RetryPolicy(max_attempts=3),
        sleep=RecordingSleep(),
    )
    return DeploymentPipeline(
        PipelineConfig(**values),
        wallet_resolver=WalletResolver(store),
        uploader=uploader or FakeUploader(),
        executor=executor,
        tracker=tracker or TransactionTracker(store),
    )


class TestPipelineSuccess:

    @pytest.mark.asyncio
    async def test_successful_run(self):
        store = FakeStore()
        pipeline = build_pipeline(store=store)

        result = await pipeline.run(make_request(requester_id="1234"))

        assert isinstance(result, Ok)
        receipt = result.value
        assert receipt.record.token_address == TOKEN_ADDRESS
        assert receipt.record.tx_hash == TX_HASH
        assert receipt.image_url == "ipfs://bafytestcid"
        assert receipt.network.chain_id == 84532
        assert receipt.wallet.source == WalletSource.OPERATOR_DEFAULT
        assert store.data["user:tokens:1234"][0]["address"] == TOKEN_ADDRESS

    @pytest.mark.asyncio
    async def test_linked_wallet_reaches_deployment_params(self):
        store = FakeStore({"wallet:1234": {"address": USER_ADDRESS, "enableCreatorRewards": True}})
        chain = FakeChainClient()
        pipeline = build_pipeline(store=store, chain=chain)

        await pipeline.run(make_request(requester_id="1234"))

        rewards = chain.submissions[0].rewards
        assert rewards.creator_admin.lower() == USER_ADDRESS
        assert rewards.creator_reward_recipient.lower() == USER_ADDRESS

    @pytest.mark.asyncio
    async def test_tracker_failure_does_not_fail_deployment(self):
        store = FailingStore(fail_get=False, fail_set=True)
        pipeline = build_pipeline(store=store)

        result = await pipeline.run(make_request(requester_id="1234"))

        assert isinstance(result, Ok)
        assert result.value.record.token_address == TOKEN_ADDRESS


class TestPipelineFailures:

    @pytest.mark.asyncio
    async def test_invalid_network_stops_before_side_effects(self):
        uploader = FakeUploader()
        chain = FakeChainClient()
        pipeline = build_pipeline(uploader=uploader, chain=chain, network_name="devnet")

        result = await pipeline.run(make_request())

        assert result.error.kind == ErrorKind.CONFIGURATION_ERROR
        assert uploader.uploads == []
        assert chain.submit_calls == 0

    @pytest.mark.asyncio
    async def test_missing_private_key(self):
        chain = FakeChainClient()
        pipeline = build_pipeline(chain=chain, private_key="")

        result = await pipeline.run(make_request())

        assert result.error.kind == ErrorKind.CONFIGURATION_ERROR
        assert chain.submit_calls == 0

    @pytest.mark.asyncio
    async def test_strict_wallet_policy_blocks_deployment(self):
        chain = FakeChainClient()
        pipeline = build_pipeline(chain=chain, require_user_wallet=True)

        result = await pipeline.run(make_request(requester_id="1234"))

        assert result.error.kind == ErrorKind.WALLET_REQUIREMENT_ERROR
        assert chain.submit_calls == 0

    @pytest.mark.asyncio
    async def test_store_failure_under_strict_policy(self):
        chain = FakeChainClient()
        pipeline = build_pipeline(store=FailingStore(), chain=chain, require_user_wallet=True)

        result = await pipeline.run(make_request(requester_id="1234"))

        assert result.error.kind == ErrorKind.WALLET_CHECK_ERROR
        assert chain.submit_calls == 0

    @pytest.mark.asyncio
    async def test_store_failure_permissive_still_deploys(self):
        chain = FakeChainClient()
        pipeline = build_pipeline(store=FailingStore(), chain=chain)

        result = await pipeline.run(make_request(requester_id="1234"))

        assert isinstance(result, Ok)
        assert chain.submit_calls == 1

    @pytest.mark.asyncio
    async def test_upload_failure(self):
        chain = FakeChainClient()
        pipeline = build_pipeline(uploader=FakeUploader(error=RuntimeError("pinata 503")), chain=chain)

        result = await pipeline.run(make_request())

        assert result.error.kind == ErrorKind.UPLOAD_ERROR
        assert result.error.http_status == 500
        assert chain.submit_calls == 0

    @pytest.mark.asyncio
    async def test_secrets_are_redacted_from_errors(self):
        leak = RuntimeError(f"signer {TEST_PRIVATE_KEY} rejected")
        pipeline = build_pipeline(chain=FakeChainClient([leak]))

        result = await pipeline.run(make_request())

        assert isinstance(result, Err)
        assert TEST_PRIVATE_KEY not in repr(result.error)
        assert TEST_PRIVATE_KEY[2:] not in repr(result.error)
        assert REDACTED in result.error.details

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_unknown_error(self):
        tracker = AsyncMock()
        tracker.record_success.side_effect = KeyError("boom")
        pipeline = build_pipeline(tracker=tracker)

        result = await pipeline.run(make_request())

        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.UNKNOWN_ERROR
        assert "KeyError" in result.error.details

    @pytest.mark.asyncio
    async def test_zero_interface_address_stops_before_upload(self):
        store = FakeStore({"wallet:1234": {"address": USER_ADDRESS, "enableCreatorRewards": True}})
        uploader = FakeUploader()
        chain = FakeChainClient()
        pipeline = build_pipeline(store=store, uploader=uploader, chain=chain, interface_admin=ZERO_ADDRESS)

        result = await pipeline.run(make_request(requester_id="1234"))

        assert result.error.kind == ErrorKind.CONFIGURATION_ERROR
        assert "INTERFACE_ADMIN" in result.error.details
        assert uploader.uploads == []
        assert store.get_calls == []
        assert chain.submit_calls == 0


class TestPreflight:

    @pytest.mark.asyncio
    async def test_resolves_network_and_wallet_without_side_effects(self):
        store = FakeStore({"wallet:1234": {"address": USER_ADDRESS, "enableCreatorRewards": True}})
        uploader = FakeUploader()
        chain = FakeChainClient()
        pipeline = build_pipeline(store=store, uploader=uploader, chain=chain)

        result = await pipeline.preflight(make_request(requester_id="1234"))

        assert isinstance(result, Ok)
        assert result.value.network.chain_id == 84532
        assert result.value.wallet.source == WalletSource.USER_WALLET
        assert uploader.uploads == []
        assert chain.submit_calls == 0
        assert "user:tokens:1234" not in store.data

    @pytest.mark.asyncio
    async def test_zero_interface_address(self):
        pipeline = build_pipeline(interface_admin=ZERO_ADDRESS)

        result = await pipeline.preflight(make_request())

        assert result.error.kind == ErrorKind.CONFIGURATION_ERROR

    @pytest.mark.asyncio
    async def test_strict_policy_with_rewards_disabled(self):
        store = FakeStore({"wallet:1234": {"address": USER_ADDRESS, "enableCreatorRewards": False}})
        pipeline = build_pipeline(store=store, require_user_wallet=True)

        result = await pipeline.preflight(make_request(requester_id="1234"))

        assert result.error.kind == ErrorKind.WALLET_REQUIREMENT_ERROR
        assert result.error.http_status == 400

    @pytest.mark.asyncio
    async def test_private_key_never_in_error(self):
        bad_key = "0x" + "zz" * 32
        pipeline = build_pipeline(private_key=bad_key, secrets=[bad_key])

        result = await pipeline.preflight(make_request())

        assert result.error.kind == ErrorKind.CONFIGURATION_ERROR
        assert bad_key not in repr(result.error)
