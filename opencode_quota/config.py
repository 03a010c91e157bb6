from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Base directory for the pricing cache; platform cache dir when unset
    cache_dir: Optional[str] = None

    # Pricing refresh
    pricing_ttl_seconds: int = 24 * 60 * 60
    pricing_timeout_seconds: float = 8.0

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "OPENCODE_QUOTA_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
