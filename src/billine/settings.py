"""Client settings via environment variables."""

from __future__ import annotations

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["BillineSettings"]


class BillineSettings(BaseSettings):
    """Gateway credentials and client tuning, all values from environment."""

    model_config = SettingsConfigDict(env_prefix="BILLINE_")

    # Merchant signing key
    secret_key: SecretStr = SecretStr("")

    # Gateway
    base_url: str = "https://api.billine.net"
    timeout: float = 30.0

    # Logging
    log_json: bool = True
    log_level: str = "INFO"
