"""Application configuration using pydantic-settings.

Engine tuning, fee parameters and the supported token pair allow-list are
all loaded from environment variables (or a local .env file).
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from swapsolver.engine.models import TokenPair

USDT_ON_ETH = "nep141:eth-0xdac17f958d2ee523a2206206994597c13d831ec7.omft.near"
USDT_ON_TRON = "nep141:tron-d28a265909efecdcee7c5028585214ea0b96f015.omft.near"


class TokenPairModel(BaseModel):
    """One entry of the SUPPORTED_PAIRS allow-list (amounts in base units)."""

    token_in: str = Field(..., min_length=1)
    token_out: str = Field(..., min_length=1)
    min_amount: int = Field(..., ge=0)
    max_amount: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_limits(self) -> "TokenPairModel":
        if self.max_amount is not None and self.max_amount < self.min_amount:
            raise ValueError(f"max_amount {self.max_amount} is below min_amount {self.min_amount}")
        return self

    def to_pair(self) -> TokenPair:
        return TokenPair(
            token_in=self.token_in,
            token_out=self.token_out,
            min_amount=self.min_amount,
            max_amount=self.max_amount,
        )


def _default_pairs() -> list[TokenPairModel]:
    return [
        TokenPairModel(
            token_in=USDT_ON_ETH,
            token_out=USDT_ON_TRON,
            min_amount=5_000_000,  # 5 USDT
        )
    ]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level when debug is off")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Safety Guards
    # ======================
    dry_run: bool = Field(default=True, description="Use simulated collaborators (no real transactions)")

    # ======================
    # Processing Loop
    # ======================
    processing_interval_seconds: float = Field(
        default=1.0, gt=0, description="Seconds between processing ticks"
    )
    max_concurrent_per_state: int = Field(
        default=50, gt=0, description="Maximum outstanding handler calls per state"
    )
    batch_size: int = Field(default=100, gt=0, description="Maximum swaps selected per state per tick")
    max_retries: int = Field(default=3, ge=0, description="Retries allowed before a swap is failed")
    handler_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Per-handler timeout before the attempt counts as a retry"
    )

    # ======================
    # Cleanup
    # ======================
    completed_swap_ttl_seconds: float = Field(
        default=3600.0, ge=0, description="Retention of completed/failed swaps"
    )
    cleanup_interval_seconds: float = Field(
        default=60.0, gt=0, description="Seconds between cleanup sweeps"
    )

    # ======================
    # Fees & Pairs
    # ======================
    fee_percentage: Decimal = Field(
        default=Decimal("0.1"), ge=0, lt=1, description="Bridge fee charged on amount in (0.1 = 10%)"
    )
    repay_yield_bps: int = Field(
        default=100, ge=0, description="Yield paid to the vault on repayment, in basis points"
    )
    supported_pairs: list[TokenPairModel] = Field(
        default_factory=_default_pairs,
        description="JSON list of {token_in, token_out, min_amount, max_amount}",
    )

    # ======================
    # Collaborators
    # ======================
    vault_asset: str = Field(default=USDT_ON_ETH, description="Asset borrowed from and repaid to the vault")
    cex_withdraw_destination: str = Field(
        default="", description="Intents deposit address the exchange withdraws to"
    )
    intent_relay_url: str = Field(
        default="https://solver-relay-v2.chaindefuser.com/rpc",
        description="Solver relay JSON-RPC endpoint",
    )
    intent_relay_api_key: Optional[str] = Field(default=None, description="Solver relay bearer token")
    relay_timeout_seconds: float = Field(default=30.0, gt=0, description="Relay HTTP timeout")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def token_pairs(self) -> list[TokenPair]:
        """Convert the configured allow-list into TokenPair objects."""
        return [pair.to_pair() for pair in self.supported_pairs]

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "engine": {
                "processing_interval_seconds": self.processing_interval_seconds,
                "max_concurrent_per_state": self.max_concurrent_per_state,
                "batch_size": self.batch_size,
                "max_retries": self.max_retries,
                "handler_timeout_seconds": self.handler_timeout_seconds,
                "completed_swap_ttl_seconds": self.completed_swap_ttl_seconds,
                "cleanup_interval_seconds": self.cleanup_interval_seconds,
            },
            "fees": {
                "fee_percentage": str(self.fee_percentage),
                "repay_yield_bps": self.repay_yield_bps,
            },
            "pairs": [f"{p.token_in} -> {p.token_out}" for p in self.token_pairs()],
            "relay": {
                "url": self.intent_relay_url,
                "api_key": "***" if self.intent_relay_api_key else "(not set)",
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
