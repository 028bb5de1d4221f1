from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TOKEN_SIGNING_SECRET = "storefront-dev-token-secret-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SF_", extra="ignore")

    app_name: str = "Storefront Orders"
    env: str = "dev"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./storefront.db"

    auth_enabled: bool = True
    token_signing_secret: str = DEFAULT_TOKEN_SIGNING_SECRET
    access_token_ttl_seconds: int = 3600
    # Principal used for every request when auth is disabled.
    dev_user_id: str = "dev-user-001"
    dev_user_role: str = "customer"

    free_shipping_threshold: int = Field(
        default=50000,
        description="Subtotal (minor units) at or above which shipping is free",
    )
    flat_shipping_fee: int = 3000
    order_number_max_attempts: int = 10
    cart_max_quantity: int = 99

    my_orders_page_size: int = 10
    admin_orders_page_size: int = 20
    max_page_size: int = 100

    payment_gateway_base_url: str = "https://api.iamport.kr"
    payment_gateway_api_key: str | None = None
    payment_gateway_api_secret: str | None = None
    payment_gateway_timeout_seconds: float = 10.0

    def model_post_init(self, __context) -> None:
        if self.env.lower() == "dev":
            return
        if self.token_signing_secret == DEFAULT_TOKEN_SIGNING_SECRET:
            raise ValueError(
                "insecure default secrets are not allowed outside dev mode; set env vars: SF_TOKEN_SIGNING_SECRET"
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
