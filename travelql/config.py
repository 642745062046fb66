"""Runtime settings read from ``TRAVELQL_*`` environment variables or ``.env``."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Defaults for the server, the pool and the executor."""

    model_config = SettingsConfigDict(
        env_prefix="TRAVELQL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database: str = ":memory:"
    max_connections: int = Field(default=20, ge=1)
    idle_timeout: float = Field(default=30.0, gt=0)
    connect_timeout: float = Field(default=2.0, gt=0)

    # Execution
    max_workers: int = Field(default=4, ge=1)
    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = 0.1
    retry_backoff: float = 2.0
    log_queries: bool = False
    log_slow_queries: bool = True
    slow_query_ms: int = 1000

    # GraphQL
    max_query_depth: Optional[int] = Field(default=None, ge=1)
    max_batch_size: Optional[int] = Field(default=None, ge=1)
    enable_metrics: bool = True
    metrics_history_size: int = 10000

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    path: str = "/graphql"
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
