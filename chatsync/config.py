"""Configuration management using pydantic-settings."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CHATSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Gateway Configuration
    base_url: str = Field(default="http://158.220.90.131:8444", description="Chat gateway base URL")
    hub_path: str = Field(default="/ChatHub", description="Push hub path on the gateway")

    # Storage Configuration
    database_path: str = Field(default="./data/chatsync.db", description="DuckDB file for secrets and cache")

    # Sync Configuration
    poll_interval: float = Field(default=2.0, description="Seconds between refreshes of the focused conversation")

    # Push Configuration
    push_reconnect_initial_delay: float = Field(default=0.5, description="First reconnect delay in seconds")
    push_reconnect_multiplier: float = Field(default=2.0, description="Factor applied to the delay after each failed reconnect")
    push_reconnect_attempts: int = Field(default=5, description="Reconnect attempts before giving up")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_file: Optional[str] = Field(default=None, description="Log file path")

    def resolve_url(self, path: str) -> str:
        """Turn a server-relative path into an absolute gateway URL."""
        if path.startswith("http"):
            return path
        return f"{self.base_url.rstrip('/')}{path}"

    def hub_url(self, token: str) -> str:
        """Build the push channel URL with the access token embedded."""
        return f"{self.base_url.rstrip('/')}{self.hub_path}?access_token={token}"


# Global settings instance
settings = Settings()
