from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    enable_openapi_docs: bool = Field(default=True, alias="ENABLE_OPENAPI_DOCS")

    ticketing_api_base_url: str = Field(
        default="http://localhost:3000",
        alias="TICKETING_API_BASE_URL",
    )
    ticketing_api_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        alias="TICKETING_API_TIMEOUT_SECONDS",
    )

    purchase_tax_rate: Decimal = Field(default=Decimal("0.10"), ge=0, alias="PURCHASE_TAX_RATE")
    purchase_max_tickets_per_order: int = Field(
        default=10,
        ge=1,
        alias="PURCHASE_MAX_TICKETS_PER_ORDER",
    )
    purchase_low_stock_threshold: int = Field(
        default=50,
        ge=0,
        alias="PURCHASE_LOW_STOCK_THRESHOLD",
    )
    purchase_payment_window_minutes: int = Field(
        default=120,
        ge=1,
        alias="PURCHASE_PAYMENT_WINDOW_MINUTES",
    )
    purchase_staging_path: str = Field(
        default=".purchase/pending_purchase.json",
        alias="PURCHASE_STAGING_PATH",
    )
    default_currency: str = Field(default="IDR", alias="DEFAULT_CURRENCY")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
