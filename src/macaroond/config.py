"""Configuration settings for macaroond."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_NETWORK = "tcp"
DEFAULT_ADDRESS = "localhost:46753"

ACCESS_TOKEN_ENV = "MACAROON_ACCESS_TOKEN"
LOCALFILE_PREFIX = "localfile:"


class Settings(BaseSettings):
    """Settings loaded from ``MACAROOND_*`` environment variables.

    - MACAROOND_NETWORK: ``tcp`` or ``unix``
    - MACAROOND_ADDRESS: ``host:port`` for tcp, a socket path for unix
    - MACAROOND_DIRECTORY: directory holding the sealed master key
    """

    network: Literal["tcp", "unix"] = DEFAULT_NETWORK
    address: str = DEFAULT_ADDRESS
    directory: Optional[Path] = None

    token_ttl_seconds: int = 24 * 60 * 60
    request_timeout: float = 30.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="MACAROOND_")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


__all__ = [
    "ACCESS_TOKEN_ENV",
    "DEFAULT_ADDRESS",
    "DEFAULT_NETWORK",
    "LOCALFILE_PREFIX",
    "Settings",
    "get_settings",
]
