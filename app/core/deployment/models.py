"""Data model for the token deployment pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ErrorInfo


@dataclass(frozen=True)
class ImageBlob:
    """Opaque image handle as received from the client."""

    content: bytes
    content_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class CastAuthor:
    fid: str
    username: str
    display_name: Optional[str] = None
    pfp_url: Optional[str] = None


@dataclass(frozen=True)
class CastContext:
    """Reference to the social post that originated a deployment."""

    cast_id: str
    author: CastAuthor
    parent_cast_id: Optional[str] = None
    embed_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "cast",
            "castId": self.cast_id,
            "parentCastId": self.parent_cast_id,
            "author": {
                "fid": self.author.fid,
                "username": self.author.username,
                "displayName": self.author.display_name,
                "pfpUrl": self.author.pfp_url,
            },
            "embedUrl": self.embed_url,
        }


@dataclass(frozen=True)
class RawDeploymentInput:
    """Unvalidated form fields of a deployment call."""

    name: Optional[str] = None
    symbol: Optional[str] = None
    image: Optional[ImageBlob] = None
    fid: Optional[str] = None
    cast_context: Optional[str] = None
    creator_fee_percentage: Optional[str] = None


@dataclass(frozen=True)
class DeploymentRequest:
    """Validated, immutable deployment request."""

    name: str
    symbol: str
    image: ImageBlob
    fee_percentage: int
    requester_id: Optional[str] = None
    cast_context: Optional[CastContext] = None


@dataclass(frozen=True)
class NetworkConfig:
    chain_id: int
    name: str
    is_mainnet: bool
    rpc_url: str

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)


class WalletSource(str, Enum):
    OPERATOR_DEFAULT = "OperatorDefault"
    USER_WALLET = "UserWallet"


@dataclass(frozen=True)
class WalletResolution:
    admin_address: str
    reward_recipient_address: str
    source: WalletSource


class AttemptOutcome(str, Enum):
    SUCCESS = "Success"
    RETRYABLE_FAILURE = "RetryableFailure"
    TERMINAL_FAILURE = "TerminalFailure"


@dataclass
class DeploymentAttempt:
    attempt_number: int
    started_at: datetime
    outcome: Optional[AttemptOutcome] = None
    error_info: Optional[ErrorInfo] = None


@dataclass(frozen=True)
class RewardsConfig:
    creator_reward: int
    creator_admin: str
    creator_reward_recipient: str
    interface_admin: str
    interface_reward_recipient: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "creatorReward": self.creator_reward,
            "creatorAdmin": self.creator_admin,
            "creatorRewardRecipient": self.creator_reward_recipient,
            "interfaceAdmin": self.interface_admin,
            "interfaceRewardRecipient": self.interface_reward_recipient,
        }


@dataclass(frozen=True)
class DeploymentParams:
    """Everything the external deployment service needs for one token."""

    name: str
    symbol: str
    image: str
    chain_id: int
    quote_token: str
    initial_market_cap: str
    rewards: RewardsConfig
    context: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "symbol": self.symbol,
            "image": self.image,
            "chainId": self.chain_id,
            "pool": {
                "quoteToken": self.quote_token,
                "initialMarketCap": self.initial_market_cap,
            },
            "rewardsConfig": self.rewards.to_dict(),
        }
        if self.context:
            payload["context"] = dict(self.context)
        return payload


@dataclass(frozen=True)
class DeploymentSubmission:
    """Canonical deployment service response."""

    token_address: Optional[str]
    tx_hash: Optional[str] = None


@dataclass(frozen=True)
class TransactionReceipt:
    tx_hash: str
    status: str
    block_number: Optional[int] = None
    contract_address: Optional[str] = None

    @property
    def reverted(self) -> bool:
        return self.status == "reverted"


@dataclass(frozen=True)
class TransactionRecord:
    transaction_id: str
    token_address: str
    created_at: datetime
    tx_hash: Optional[str] = None
    requester_id: Optional[str] = None
    attempts: int = 1


@dataclass(frozen=True)
class DeploymentReceipt:
    """What a successful pipeline run hands back to the HTTP layer."""

    record: TransactionRecord
    image_url: str
    network: NetworkConfig
    wallet: WalletResolution
    creator_reward: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tokenAddress": self.record.token_address,
            "txHash": self.record.tx_hash,
            "imageUrl": self.image_url,
            "network": self.network.name,
            "chainId": self.network.chain_id,
            "transactionId": self.record.transaction_id,
        }


__all__ = [
    "ImageBlob",
    "CastAuthor",
    "CastContext",
    "RawDeploymentInput",
    "DeploymentRequest",
    "NetworkConfig",
    "WalletSource",
    "WalletResolution",
    "AttemptOutcome",
    "DeploymentAttempt",
    "RewardsConfig",
    "DeploymentParams",
    "DeploymentSubmission",
    "TransactionReceipt",
    "TransactionRecord",
    "DeploymentReceipt",
]
