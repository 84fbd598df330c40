from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseModel):
    """Application-specific configuration values."""

    log_level: str = "INFO"


class SearchConfig(BaseModel):
    """Defaults applied to the root search instance."""

    index_name: Optional[str] = None
    # Seconds without a response before nodes are flagged as stalled
    stalled_search_delay: float = 0.2
    hits_per_page: Optional[int] = None


class ClientConfig(BaseModel):
    """HTTP search client configuration values."""

    app_id: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None  # Defaults to https://<app_id>-dsn.algolia.net
    timeout: float = 30.0
    verify_ssl: bool = True


class RoutingConfig(BaseModel):
    """URL routing configuration values."""

    enabled: bool = False
    base_url: str = "http://localhost/"
    state_mapping: Literal["simple", "single_index"] = "simple"
    index_key: Optional[str] = None  # Required by the single_index mapping


class Settings(BaseSettings):
    """Top-level settings loaded from environment variables and .env only."""

    model_config = SettingsConfigDict(
        env_prefix="INDEXTREE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app: AppConfig = AppConfig()
    search: SearchConfig = SearchConfig()
    client: ClientConfig = ClientConfig()
    routing: RoutingConfig = RoutingConfig()


def load_settings() -> Settings:
    """Load settings from environment variables and .env only."""
    return Settings()  # type: ignore[call-arg]
