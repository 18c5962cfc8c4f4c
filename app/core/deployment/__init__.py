"""
Token Deployment Module

Validation, network and wallet resolution, retried execution and the
pipeline that ties them together.
"""

from .errors import (
    ErrorInfo,
    ErrorKind,
    RetryableDeploymentError,
    TerminalDeploymentError,
    TransactionRevertedError,
    ReceiptTimeoutError,
    InvalidDeploymentResponse,
    redact_secrets,
)
from .executor import DeploymentExecutor, check_interface_addresses
from .models import (
    DeploymentReceipt,
    DeploymentRequest,
    ImageBlob,
    NetworkConfig,
    RawDeploymentInput,
    TransactionRecord,
    WalletResolution,
    WalletSource,
)
from .network import resolve_network
from .pipeline import DeploymentPipeline, PipelineConfig, Preflight, pipeline_config_from_settings
from .result import Err, Ok, Result
from .retry import RetryPolicy, with_retry
from .validation import sanitize_text, validate_request
from .wallet import WalletResolver, operator_wallet_from_key

__all__ = [
    # Errors
    "ErrorInfo",
    "ErrorKind",
    "RetryableDeploymentError",
    "TerminalDeploymentError",
    "TransactionRevertedError",
    "ReceiptTimeoutError",
    "InvalidDeploymentResponse",
    "redact_secrets",
    # Models
    "DeploymentReceipt",
    "DeploymentRequest",
    "ImageBlob",
    "NetworkConfig",
    "RawDeploymentInput",
    "TransactionRecord",
    "WalletResolution",
    "WalletSource",
    # Result
    "Ok",
    "Err",
    "Result",
    # Components
    "validate_request",
    "sanitize_text",
    "resolve_network",
    "WalletResolver",
    "operator_wallet_from_key",
    "RetryPolicy",
    "with_retry",
    "DeploymentExecutor",
    "check_interface_addresses",
    "DeploymentPipeline",
    "PipelineConfig",
    "Preflight",
    "pipeline_config_from_settings",
]
