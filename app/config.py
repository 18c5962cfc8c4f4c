from pathlib import Path
from typing import Any, List

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

WETH_BASE_ADDRESS = "0x4200000000000000000000000000000000000006"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalize values that are commonly pasted with stray whitespace."""

        super().model_post_init(__context)

        object.__setattr__(self, "interface_admin", self.interface_admin.strip())
        object.__setattr__(
            self, "interface_reward_recipient", self.interface_reward_recipient.strip()
        )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Operator wallet
    deployer_private_key: SecretStr = Field(
        default=SecretStr(""),
        description="Operator private key; only used to derive the operator wallet address",
    )
    interface_admin: str = Field(default="", description="Operator interface admin address")
    interface_reward_recipient: str = Field(
        default="",
        description="Operator interface reward recipient address",
    )

    # Token economics
    creator_reward: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Default creator fee percentage when the request does not supply a usable one",
    )
    initial_market_cap: str = Field(default="0.1", description="Initial pool size in quote token units")
    quote_token_address: str = Field(default=WETH_BASE_ADDRESS, description="Pool quote token")

    # Network
    base_network: str = Field(default="testnet", description="Target network: mainnet or testnet")
    rpc_url_override: str = Field(
        default="",
        description="Replace the selected network's public RPC endpoint",
        validation_alias=AliasChoices("rpc_url_override", "RPC_URL"),
    )

    # Wallet policy
    require_wallet_for_simple_launch: bool = Field(
        default=False,
        description="Require a linked wallet with creator rewards enabled for every deployment",
    )

    # Deployment execution
    deploy_max_retries: int = Field(default=3, ge=1, description="Maximum deployment attempts")
    deploy_retry_base_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Base delay for exponential backoff between attempts",
    )
    deploy_confirmations: int = Field(default=1, ge=1, description="Confirmations to wait for")
    receipt_timeout_seconds: float = Field(default=120.0, gt=0, description="Receipt wait bound")
    request_timeout_seconds: int = Field(default=30, description="Request timeout")

    # External collaborators
    deployment_service_url: str = Field(default="", description="Token deployment service base URL")
    deployment_service_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer token for the deployment service",
    )
    redis_url: str = Field(
        default="",
        description="Redis connection string; falls back to an in-process store when empty",
    )
    pinata_jwt: SecretStr = Field(default=SecretStr(""), description="Pinata JWT for image uploads")

    # HTTP surface
    allowed_origins: str = Field(
        default="",
        description="Comma separated CORS allow-list; '*' allows any origin",
    )

    # Deployment queue
    queue_worker_enabled: bool = Field(
        default=True,
        description="Start the background queue drain loop alongside FastAPI",
    )
    queue_drain_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Idle poll interval of the queue drain loop",
    )
    queue_job_ttl_seconds: int = Field(default=86400, description="Lifetime of queued job status records")
    queue_max_size: int = Field(default=1000, ge=1, description="Maximum number of pending jobs")

    @property
    def allowed_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def has_redis(self) -> bool:
        return bool(self.redis_url)

    @property
    def secret_values(self) -> List[str]:
        """Configured secrets that must never reach a response or log line."""
        values: List[str] = []
        key = self.deployer_private_key.get_secret_value().strip()
        if key:
            values.append(key)
            if key.lower().startswith("0x"):
                values.append(key[2:])
            else:
                values.append(f"0x{key}")
        for secret in (self.pinata_jwt, self.deployment_service_api_key):
            raw = secret.get_secret_value().strip()
            if raw:
                values.append(raw)
        return values


# Global settings instance
settings = Settings()
