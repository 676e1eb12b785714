# src/alertledger/config.py
"""
Runtime settings, loaded from the environment and an optional `.env` file.
"""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    ENV: str = Field(default="dev")

    # API / Security
    API_KEY: str | None = None
    CORS_ORIGINS: str = "*"

    # Day boundaries for the status resolver ("is this from today?")
    MARKET_TIMEZONE: str = Field(default="America/Argentina/Buenos_Aires")

    # Ledger numerics
    PERCENT_EPSILON: Decimal = Field(default=Decimal("0.000001"))
    FULL_LIQUIDATION_EPSILON: Decimal = Field(default=Decimal("0.01"))

    # Capital base used when a pool is first created
    DEFAULT_TRADERCALL_LIQUIDITY: Decimal = Field(default=Decimal("0"))
    DEFAULT_SMARTMONEY_LIQUIDITY: Decimal = Field(default=Decimal("0"))

    # Observability
    METRICS_ENABLED: bool = True


settings = Settings()
