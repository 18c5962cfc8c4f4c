from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..core.deployment.models import (
    DeploymentParams,
    DeploymentSubmission,
    ImageBlob,
    TransactionReceipt,
)


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass

    async def close(self) -> None:
        """Release network resources"""
        return None


class KeyValueStore(Provider):
    """JSON key-value store keyed by requester identity, token address or job id"""

    @abstractmethod
    async def get(self, key: str) -> Any:
        """Return the decoded value or None when absent"""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None, *, only_if_absent: bool = False) -> bool:
        """Store a JSON-serializable value; returns False when only_if_absent skipped the write"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass


class ImageUploader(Provider):
    """Content-addressed storage for token images"""

    @abstractmethod
    async def upload(self, image: ImageBlob) -> str:
        """Upload the image and return its content URI"""
        pass


class BlockchainClient(Provider):
    """Deployment service plus the chain reads needed to confirm a deployment"""

    @abstractmethod
    async def submit_deployment(self, params: DeploymentParams) -> DeploymentSubmission:
        """Broadcast a token deployment; the hash may be missing"""
        pass

    @abstractmethod
    async def wait_for_receipt(
        self, tx_hash: str, *, confirmations: int = 1, timeout: float = 120.0
    ) -> TransactionReceipt:
        """Block until the transaction has the requested confirmations"""
        pass

    @abstractmethod
    async def latest_block(self) -> int:
        pass

    @abstractmethod
    async def find_deployment_transaction(self, token_address: str, from_block: int) -> Optional[str]:
        """Scan chain events for the transaction that created ``token_address``"""
        pass
