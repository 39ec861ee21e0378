"""Application settings and configuration.

This module defines all configuration options for the forward relay.
Settings are loaded from environment variables (or a `.env` file) with
sensible defaults for everything except the chain endpoint, the relay key
and the two contract addresses.
"""

from eth_account import Account
from eth_utils import is_address, to_checksum_address
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GWEI = 10**9


class Settings(BaseSettings):
    """Relay settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Forward Relay", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # HTTP server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    shutdown_grace_seconds: float = Field(default=5.0, alias="SHUTDOWN_GRACE_SECONDS")

    # Chain access and relay identity
    rpc_url: str = Field(alias="RPC_URL")
    rpc_timeout_seconds: float = Field(default=30.0, alias="RPC_TIMEOUT_SECONDS")
    relayer_private_key: str = Field(alias="RELAYER_PRIVATE_KEY", repr=False)
    chain_id: int = Field(default=80002, alias="CHAIN_ID")
    hub_address: str = Field(alias="HUB_ADDRESS")
    target_contract: str = Field(
        validation_alias=AliasChoices("TARGET_CONTRACT", "NFT_CONTRACT"),
    )

    # Fee and gas policy
    max_gas_price_gwei: int = Field(default=100, alias="MAX_GAS_PRICE_GWEI")
    gas_limit_buffer_percent: int = Field(default=20, alias="GAS_LIMIT_BUFFER_PERCENT")
    default_gas_limit: int = Field(default=500_000, alias="DEFAULT_GAS_LIMIT")

    # Admission control
    rate_limit_window_seconds: float = Field(default=60.0, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_max_requests: int = Field(default=5, alias="RATE_LIMIT_MAX_REQUESTS")
    idempotency_ttl_seconds: int = Field(default=300, alias="IDEMPOTENCY_TTL_SECONDS")
    cleanup_interval_seconds: float = Field(default=60.0, alias="CLEANUP_INTERVAL_SECONDS")

    # Optional hub-side precondition checks
    check_caller_allowlist: bool = Field(default=True, alias="CHECK_CALLER_ALLOWLIST")
    check_hub_nonce: bool = Field(default=True, alias="CHECK_HUB_NONCE")

    # Confirmation polling
    receipt_poll_interval_seconds: float = Field(
        default=2.0, alias="RECEIPT_POLL_INTERVAL_SECONDS"
    )
    receipt_timeout_seconds: float = Field(default=120.0, alias="RECEIPT_TIMEOUT_SECONDS")
    reconcile_retention_seconds: float = Field(
        default=3600.0, alias="RECONCILE_RETENTION_SECONDS"
    )

    # Redis for a shared idempotency store (in-process store when unset)
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # CORS configuration for browser clients
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("hub_address", "target_contract")
    @classmethod
    def _checksum_address(cls, value: str) -> str:
        if not is_address(value):
            raise ValueError(f"not a valid address: {value!r}")
        return to_checksum_address(value)

    @property
    def relayer_address(self) -> str:
        """Return the checksummed address controlled by the relay key."""
        return Account.from_key(self.relayer_private_key).address

    @property
    def max_gas_price_wei(self) -> int:
        """Return the fee ceiling in wei."""
        return int(self.max_gas_price_gwei) * GWEI

    @property
    def public_config(self) -> dict[str, object]:
        """Return a sanitized snapshot of runtime configuration.

        Excludes the key and connection strings; suitable for logs.
        """
        return {
            "relayer": self.relayer_address,
            "chain_id": self.chain_id,
            "hub": self.hub_address,
            "target": self.target_contract,
            "max_gas_price_gwei": self.max_gas_price_gwei,
            "rate_limit": {
                "window_seconds": self.rate_limit_window_seconds,
                "max_requests": self.rate_limit_max_requests,
            },
            "idempotency_ttl_seconds": self.idempotency_ttl_seconds,
            "shared_replay_store": self.redis_url is not None,
        }


settings = Settings()  # type: ignore[call-arg]
