"""
Application configuration.

Settings come from environment variables, optionally loaded from
a .env file. Connection strings and credentials never live in
code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:

    APP_NAME: str = "Shop Ledger"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/shop_ledger",
    )

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Stale views are reported as /{locale}/{shop_id}/{view}
    DEFAULT_LOCALE: str = os.getenv("DEFAULT_LOCALE", "en")

    # Decimal places accepted on money amounts
    CURRENCY_PLACES: int = int(os.getenv("CURRENCY_PLACES", "2"))


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()
