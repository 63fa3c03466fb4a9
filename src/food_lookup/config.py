"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    off_base_url: str = "https://world.openfoodfacts.org"
    off_user_agent: str = "FoodLookup/1.0 (Python) OFF Lookup"
    request_timeout_seconds: float = 30.0
    max_page_size: int = 100
    min_query_length: int = 2
    max_retries: int = 2
    retry_base_delay_seconds: float = 0.5
    rate_limit_default_delay_seconds: float = 2.0
    result_cache_ttl_seconds: int = 0
    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
