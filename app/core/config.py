# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - JWT_SECRET (shared secret used to sign shopper access tokens)

    Optional:
      - COMMERCE_API_URL (upstream commerce API, products/orders/coupons)
      - TAX_RATE, FREE_SHIPPING_THRESHOLD, DEFAULT_SHIPPING_FEE
    """

    PROJECT_NAME: str = "Storefront Checkout API"
    API_V1_STR: str = "/api/v1"

    # Upstream commerce API (products, addresses, coupons, orders)
    COMMERCE_API_URL: str = "http://localhost:7000/api/v1"
    COMMERCE_API_TIMEOUT: float = 10.0

    # JWT verification (backend-side)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    # Checkout policy
    TAX_RATE: float = 0.05

    # Used when the shipping-settings endpoint cannot be reached
    FREE_SHIPPING_THRESHOLD: float = 1999
    DEFAULT_SHIPPING_FEE: float = 0

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
