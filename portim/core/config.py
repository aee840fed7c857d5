"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # Storage
    storage_backend: Literal["memory", "firestore"] = "memory"
    firestore_emulator_host: str | None = None
    gcp_project_id: str = ""

    # Credentials
    # AES key for control tokens: 32 raw characters or 64 hex characters
    secret_encryption_key: str = ""
    secret_salt_bytes: int = 36
    secret_token_bytes: int = 32

    # Identity provider (bearer tokens)
    jwt_secret: str = Field(default="")
    jwt_algorithm: str = "HS256"
    jwt_projects_claim: str = "projects"

    # Outbound HTTP
    http_timeout_seconds: float = 10.0
    http_retry_attempts: int = 3
    http_retry_backoff_seconds: float = 2.0

    # Delivery
    delivery_mode: Literal["inline", "background"] = "inline"
    session_header_name: str = "catapio-session-id"
    token_header_name: str = "catapio-token"

    # Interfaces
    require_https_endpoints: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
