"""Configuration management for TaskNest."""

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="TASKNEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "TaskNest"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Paths
    data_dir: Path = Path("data")

    # Database
    database_url: str = "sqlite+aiosqlite:///data/tasknest.db"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Identity provider tokens. The secret is either a shared HMAC key or
    # the provider's PEM public key, depending on auth_algorithms.
    auth_secret: str = "change-me"
    auth_algorithms: list[str] = ["HS256"]
    auth_issuer: str | None = None
    auth_audience: str | None = None

    # Local identity used by the CLI
    cli_subject: str = "local-user"
    cli_email: str = ""
    cli_name: str | None = None

    # Rate limiting (requests per minute)
    rate_limit_enabled: bool = True
    rate_limit_default: str = "60/minute"  # Mutating endpoints
    rate_limit_bulk: str = "20/minute"  # Bulk endpoints touch many rows

    # CORS (Cross-Origin Resource Sharing)
    cors_enabled: bool = True
    cors_allow_origins: list[str] = []  # Empty = same-origin only; use ["*"] for any origin
    cors_allow_methods: list[str] = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    cors_allow_headers: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_max_age: int = 600  # Preflight cache duration in seconds

    # Change feed
    event_queue_size: int = 100  # Per-subscriber backlog before events are dropped

    def setup_directories(self) -> None:
        """Ensure required directories exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    settings.setup_directories()
    return settings
