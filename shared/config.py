"""
Shared configuration management for the Prism edge gateway.
"""

import os
import tempfile
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ORACLE_ADDRESS = "0xe5867B1d421f0b52697F16e2ac437e87d66D5fbF"
DEFAULT_TOKEN_METADATA_URL = "https://www.fasterz.fun/api/tokens"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="PRISM_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Shared store; leaving it unset disables rate limiting entirely
    redis_url: Optional[str] = Field(default=None)

    # Rate limiting
    rate_limit_requests: int = Field(default=120, gt=0)
    rate_limit_window_seconds: int = Field(default=60, gt=0)
    rate_limit_fail_open: bool = Field(default=True)
    rate_limit_prefix: str = Field(default="prism:ratelimit")

    # Cache
    cache_backend: str = Field(default="auto", pattern="^(auto|redis|file|memory)$")
    cache_dir: str = Field(default_factory=lambda: os.path.join(tempfile.gettempdir(), "prism-cache"))
    cache_key_hash: str = Field(default="fast", pattern="^(fast|sha256)$")

    # Upstreams
    subgraph_endpoint: Optional[str] = Field(default=None)
    rpc_http_url: Optional[str] = Field(default=None)
    oracle_address: str = Field(default=DEFAULT_ORACLE_ADDRESS)
    token_metadata_url: str = Field(default=DEFAULT_TOKEN_METADATA_URL)
    interactive_timeout_seconds: float = Field(default=5.0, gt=0)
    batch_timeout_seconds: float = Field(default=30.0, gt=0)

    # Chain
    chain_id: int = Field(default=6343)
    chain_name: str = Field(default="MegaETH Testnet")

    # Aggregated resources
    price_cache_ttl: int = Field(default=30, gt=0)
    stats_cache_ttl: int = Field(default=60, gt=0)
    token_list_cache_ttl: int = Field(default=300, gt=0)
    pool_list_cache_ttl: int = Field(default=300, gt=0)
    page_size: int = Field(default=1000, gt=0)
    max_rows: int = Field(default=10_000, gt=0)

    @property
    def rate_limit_enabled(self) -> bool:
        return bool(self.redis_url)

    def resolved_cache_backend(self) -> str:
        """Resolve the "auto" cache backend against the configured stores."""
        if self.cache_backend != "auto":
            return self.cache_backend
        return "redis" if self.redis_url else "file"


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
