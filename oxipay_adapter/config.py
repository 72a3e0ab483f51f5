from __future__ import annotations

from decimal import Decimal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration read from environment variables."""

    # General
    api_bearer_token: str = "testtoken"
    api_basic_username: str = "admin"
    api_basic_password: str = "admin"

    # Oxipay merchant config
    oxipay_merchant_id: str = ""
    oxipay_encryption_key: str = ""
    oxipay_use_sandbox: bool = True
    # "Australia" or "New Zealand"; anything else resolves to Australia
    oxipay_region: str = ""
    # 0 disables the bound
    oxipay_minimum_order_total: Decimal = Decimal("0")
    oxipay_maximum_order_total: Decimal = Decimal("0")
    oxipay_online_refunds: bool = True
    oxipay_http_timeout_seconds: float = 15.0

    # Storefront
    store_url: str = "http://localhost:8000/"
    store_name: str = "Demo Store"
    store_currency_code: str = "AUD"
    checkout_completed_path: str = "checkout/completed/{order_id}"
    order_details_path: str = "orderdetails/{order_id}"
    # shared with the storefront proxy that sets X-Customer-Id; empty trusts no one
    storefront_token: str = ""

    # Database (PostgreSQL)
    db_host: str = ""
    db_port: int = 5432
    db_user: str = ""
    db_password: str = ""
    db_name: str = ""
    db_schema: str = "shop"

    @field_validator("store_url")
    @classmethod
    def _trailing_slash(cls, value: str) -> str:
        return value if value.endswith("/") else f"{value}/"

    @property
    def db_enabled(self) -> bool:
        return bool(self.db_host and self.db_user and self.db_name)

    @property
    def db_dsn(self) -> str:
        if not self.db_enabled:
            return ""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Pydantic v2 settings config
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
