"""Fakes for the external collaborators shared across the test suite."""

from typing import Any, Dict, List, Optional, Union

from app.config import Settings
from app.core.deployment.models import (
    DeploymentParams,
    DeploymentRequest,
    DeploymentSubmission,
    ImageBlob,
    TransactionReceipt,
)
from app.providers.base import BlockchainClient, ImageUploader, KeyValueStore

TEST_PRIVATE_KEY = "0x" + "11" * 32
INTERFACE_ADMIN = "0x1111111111111111111111111111111111111111"
INTERFACE_REWARD_RECIPIENT = "0x2222222222222222222222222222222222222222"
USER_ADDRESS = "0x3333333333333333333333333333333333333333"
TOKEN_ADDRESS = "0x4444444444444444444444444444444444444444"
TX_HASH = "0x" + "ab" * 32
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeStore(KeyValueStore):
    name = "fake"

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self.data: Dict[str, Any] = dict(data or {})
        self.ttls: Dict[str, Optional[int]] = {}
        self.get_calls: List[str] = []

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "backend": self.name}

    async def get(self, key: str) -> Any:
        self.get_calls.append(key)
        return self.data.get(key)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None, *, only_if_absent: bool = False) -> bool:
        if only_if_absent and key in self.data:
            return False
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class FailingStore(FakeStore):
    """Store whose reads and/or writes raise."""

    def __init__(self, *, fail_get: bool = True, fail_set: bool = True) -> None:
        super().__init__()
        self.fail_get = fail_get
        self.fail_set = fail_set

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "error", "backend": self.name, "reason": "connection refused"}

    async def get(self, key: str) -> Any:
        self.get_calls.append(key)
        if self.fail_get:
            raise ConnectionError("store unavailable")
        return self.data.get(key)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None, *, only_if_absent: bool = False) -> bool:
        if self.fail_set:
            raise ConnectionError("store unavailable")
        return await super().set(key, value, ttl, only_if_absent=only_if_absent)


class FakeUploader(ImageUploader):
    name = "fake-uploader"

    def __init__(self, uri: str = "ipfs://bafytestcid", error: Optional[Exception] = None) -> None:
        self.uri = uri
        self.error = error
        self.uploads: List[ImageBlob] = []

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def upload(self, image: ImageBlob) -> str:
        self.uploads.append(image)
        if self.error is not None:
            raise self.error
        return self.uri


Outcome = Union[DeploymentSubmission, Exception]


class FakeChainClient(BlockchainClient):
    """Scripted blockchain client.

    ``outcomes`` are consumed one per submission; the last one repeats.
    """

    name = "fake-chain"

    def __init__(
        self,
        outcomes: Optional[List[Outcome]] = None,
        *,
        receipt_status: str = "success",
        receipt_statuses: Optional[List[str]] = None,
        scan_result: Optional[str] = None,
        block: int = 100,
    ) -> None:
        self.outcomes = list(outcomes or [DeploymentSubmission(token_address=TOKEN_ADDRESS, tx_hash=TX_HASH)])
        self.receipt_status = receipt_status
        self.receipt_statuses = list(receipt_statuses or [])
        self.scan_result = scan_result
        self.block = block
        self.submissions: List[DeploymentParams] = []
        self.receipt_requests: List[str] = []
        self.scans: List[tuple] = []

    @property
    def submit_calls(self) -> int:
        return len(self.submissions)

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def latest_block(self) -> int:
        return self.block

    async def submit_deployment(self, params: DeploymentParams) -> DeploymentSubmission:
        self.submissions.append(params)
        index = min(len(self.submissions), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def wait_for_receipt(
        self, tx_hash: str, *, confirmations: int = 1, timeout: float = 120.0
    ) -> TransactionReceipt:
        self.receipt_requests.append(tx_hash)
        status = self.receipt_statuses.pop(0) if self.receipt_statuses else self.receipt_status
        return TransactionReceipt(tx_hash=tx_hash, status=status, block_number=self.block + 1)

    async def find_deployment_transaction(self, token_address: str, from_block: int) -> Optional[str]:
        self.scans.append((token_address, from_block))
        return self.scan_result


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_image(content_type: str = "image/png", content: bytes = PNG_BYTES) -> ImageBlob:
    return ImageBlob(content=content, content_type=content_type, filename="logo.png")


def make_request(**overrides: Any) -> DeploymentRequest:
    values: Dict[str, Any] = {
        "name": "Test Token",
        "symbol": "TEST",
        "image": make_image(),
        "fee_percentage": 80,
        "requester_id": None,
        "cast_context": None,
    }
    values.update(overrides)
    return DeploymentRequest(**values)


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "deployer_private_key": TEST_PRIVATE_KEY,
        "interface_admin": INTERFACE_ADMIN,
        "interface_reward_recipient": INTERFACE_REWARD_RECIPIENT,
        "base_network": "testnet",
        "redis_url": "",
        "pinata_jwt": "test-pinata-jwt",
        "deployment_service_url": "https://deployer.test",
        "deployment_service_api_key": "test-service-key",
        "allowed_origins": "https://app.example.com",
        "queue_worker_enabled": False,
        "require_wallet_for_simple_launch": False,
    }
    values.update(overrides)
    return Settings(**values)

