"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # NEAR Intents 1Click API
    # ======================
    intents_api_url: str = Field(
        default="https://1click.near-intents.org",
        description="Base URL of the 1Click swap API",
    )
    request_timeout_seconds: float = Field(
        default=30.0, description="Per-request network timeout"
    )
    referral: str = Field(default="crypto-concierge", description="Referral tag sent with quotes")
    quote_waiting_time_ms: int = Field(
        default=3000, description="How long the solver network may take to quote"
    )

    # ======================
    # Checkout flow
    # ======================
    slippage_tolerance_bps: int = Field(
        default=100, ge=0, le=10000, description="Slippage tolerance in basis points (100 = 1%)"
    )
    quote_deadline_minutes: int = Field(
        default=30, gt=0, description="Quote deadline relative to request time"
    )
    poll_interval_ms: int = Field(default=2000, ge=0, description="Delay between status polls")
    max_poll_attempts: int = Field(default=60, gt=0, description="Status polls before timing out")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")
    session_ttl_seconds: int = Field(
        default=3600, gt=0, description="Idle time after which a settled checkout session is dropped"
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def polling_window_seconds(self) -> float:
        """Wall-clock bound of a full polling run."""
        return self.poll_interval_ms * self.max_poll_attempts / 1000

    def get_safe_dict(self) -> dict:
        """Return settings dict suitable for the detailed health endpoint."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "session_ttl_seconds": self.session_ttl_seconds,
            "intents": {
                "api_url": self.intents_api_url,
                "timeout_seconds": self.request_timeout_seconds,
                "referral": self.referral,
            },
            "checkout": {
                "slippage_tolerance_bps": self.slippage_tolerance_bps,
                "quote_deadline_minutes": self.quote_deadline_minutes,
                "poll_interval_ms": self.poll_interval_ms,
                "max_poll_attempts": self.max_poll_attempts,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
