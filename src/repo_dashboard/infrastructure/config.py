"""Application configuration — loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    aggregation_base_url: str = "https://cache.forgithub.com"
    github_api_url: str = "https://api.github.com"
    site_url: str = "https://flaredream.com"
    cache_backend: Literal["memory", "file"] = "memory"
    cache_file: str = ".cache/dashboard-cache.json"
    cache_ttl_seconds: int = 86_400
    stale_after_seconds: int = 300
    probe_concurrency: int = 8
    probe_timeout_seconds: float = 5.0
    http_timeout_seconds: float = 30.0
    viewer_login_header: str = "X-Viewer-Login"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
