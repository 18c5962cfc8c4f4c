from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ErrorDetails(_CamelModel):
    type: str = Field(description="Error kind")
    details: Any = Field(default=None, description="Field-level or diagnostic detail")
    user_message: Optional[str] = Field(default=None, alias="userMessage", description="Message safe to show end users")
    code: Optional[str] = Field(default=None, description="Underlying error code")


class DeployErrorResponse(_CamelModel):
    success: bool = Field(default=False, description="Always false")
    error: str = Field(description="Error message")
    error_details: Optional[ErrorDetails] = Field(default=None, alias="errorDetails")
    debug_info: Optional[Dict[str, Any]] = Field(default=None, alias="debugInfo")


class DeploySuccessResponse(_CamelModel):
    success: bool = Field(default=True, description="Whether the token was deployed")
    token_address: str = Field(alias="tokenAddress", description="Deployed token contract address")
    tx_hash: Optional[str] = Field(alias="txHash", description="Deployment transaction hash, null when unknown")
    image_url: str = Field(alias="imageUrl", description="Content URI of the token image")
    network: str = Field(description="Network display name")
    chain_id: int = Field(alias="chainId", description="EIP-155 chain id")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    status_url: Optional[str] = Field(default=None, alias="statusUrl")

    def to_json(self) -> Dict[str, Any]:
        payload = super().to_json()
        payload["txHash"] = self.tx_hash
        return payload


class QueuedDeployResponse(_CamelModel):
    success: bool = Field(default=True)
    transaction_id: str = Field(alias="transactionId", description="Job id to poll")
    status_url: str = Field(alias="statusUrl", description="Where to poll for the job status")
    status: str = Field(default="queued")
    priority: str = Field(description="Queue priority")


class UserTokensResponse(_CamelModel):
    success: bool = Field(default=True)
    tokens: List[Dict[str, Any]] = Field(default_factory=list, description="Newest first")
    next_cursor: Optional[str] = Field(alias="nextCursor", description="Cursor for the next page, null at the end")

    def to_json(self) -> Dict[str, Any]:
        payload = super().to_json()
        payload["nextCursor"] = self.next_cursor
        return payload


class WalletRequirementResponse(_CamelModel):
    require_wallet: bool = Field(alias="requireWallet", description="Whether deployments need a linked wallet")
