from .responses import (
    DeployErrorResponse,
    DeploySuccessResponse,
    ErrorDetails,
    QueuedDeployResponse,
    UserTokensResponse,
    WalletRequirementResponse,
)

__all__ = [
    "DeployErrorResponse",
    "DeploySuccessResponse",
    "ErrorDetails",
    "QueuedDeployResponse",
    "UserTokensResponse",
    "WalletRequirementResponse",
]
