import os

from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the legacy PRIVATE_KEY variable and default the relay auth key."""

        super().model_post_init(__context)

        if not self.wallet_private_key:
            fallback = os.getenv("PRIVATE_KEY")
            if fallback:
                object.__setattr__(self, "wallet_private_key", fallback)

        if not self.relay_signing_key and self.wallet_private_key:
            object.__setattr__(self, "relay_signing_key", self.wallet_private_key)

    log_level: str = Field(default="INFO", description="Logging level")

    # Endpoints
    rpc_url: str = Field(default="http://localhost:8545", description="Execution node JSON-RPC URL")
    relay_url: str = Field(
        default="https://relay.flashbots.net",
        description="Private bundle relay URL",
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")

    # Keys
    wallet_private_key: str = Field(default="", description="Hex private key of the sending wallet")
    relay_signing_key: str = Field(
        default="",
        description="Key used to sign relay requests (defaults to the wallet key)",
    )

    # Direct path receipt polling
    receipt_poll_interval_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay between receipt lookups",
    )
    receipt_timeout_seconds: float = Field(
        default=180.0,
        gt=0,
        description="Maximum time to wait for a receipt",
    )
    receipt_error_retries: int = Field(
        default=3,
        ge=0,
        description="Consecutive transport errors tolerated while polling for a receipt",
    )

    # Bundle path window
    bundle_start_offset: int = Field(
        default=1,
        ge=1,
        description="First target block, relative to the block observed at submission start",
    )
    bundle_block_window: int = Field(
        default=10,
        ge=1,
        description="Number of consecutive target blocks a bundle is offered for",
    )

    # Transaction defaults
    weth_address: str = Field(
        default="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        description="Wrapped ether contract used by the wrap command",
    )
    max_fee_per_gas_wei: int = Field(default=100_000_000_000, ge=0, description="Default max fee per gas")
    max_priority_fee_per_gas_wei: int = Field(
        default=100_000_000_000,
        ge=0,
        description="Default max priority fee per gas",
    )


# Global settings instance
settings = Settings()
