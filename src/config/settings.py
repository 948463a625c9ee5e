"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    # Upstream weather provider
    openweather_api_key: str
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    upstream_timeout_seconds: float = 10.0

    # Security & CORS (comma-separated lists)
    allowed_origins: str = "http://localhost:3000"
    trusted_hosts: str = "localhost,localhost:3000"
    cors_allow_credentials: bool = True
    cors_allow_methods: str = "GET, POST, PUT, DELETE, OPTIONS"
    cors_allow_headers: str = "Content-Type, Authorization, X-Requested-With"
    cors_max_age: int = 86400

    # Rate limiting tiers
    rate_limit_general_max_requests: int = 100
    rate_limit_general_window_seconds: int = 900
    rate_limit_general_block_seconds: int = 300
    rate_limit_api_max_requests: int = 50
    rate_limit_api_window_seconds: int = 300
    rate_limit_api_block_seconds: int = 600
    rate_limit_search_max_requests: int = 30
    rate_limit_search_window_seconds: int = 60
    rate_limit_search_block_seconds: int = 120
    rate_limit_api_prefix: str = "/api/weather"
    rate_limit_max_entries: int = 10000  # Idle entries are pruned past this size

    # In-memory weather cache
    cache_ttl_seconds: int = 300
    cache_max_size: int = Field(default=100, ge=1)

    # Feature flags
    enable_cache: bool = True
    enable_rate_limiting: bool = True
    enable_request_logging: bool = True

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    # development | production
    environment: str = "development"

    # Paths that bypass the gating middleware entirely (prefix match)
    gate_excluded_paths: str = (
        "/_next/static,/_next/image,/static,/favicon.ico,/robots.txt,/sitemap.xml,/health"
    )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def allowed_origins_list(self) -> list[str]:
        return _split_csv(self.allowed_origins)

    @property
    def trusted_hosts_list(self) -> list[str]:
        return _split_csv(self.trusted_hosts)

    @property
    def excluded_paths_list(self) -> list[str]:
        return _split_csv(self.gate_excluded_paths)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
