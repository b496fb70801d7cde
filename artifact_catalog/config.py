"""
Configuration management for Artifact Catalog.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Application
    app_name: str = Field(default="Artifact Catalog")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_workers: int = Field(default=1)

    # Database
    database_url: str = Field(default="sqlite:///./artifact_catalog.db")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="'json' or 'console'")

    # Identity and public surface
    owner_header: str = Field(
        default="X-Owner-Email",
        description="Request header carrying the verified owner identity, set by the upstream auth proxy.",
    )
    cors_origins: str = Field(
        default="https://claude.ai",
        description="Comma-separated list of origins allowed to call the API.",
    )
    public_base_url: Optional[str] = Field(
        default=None,
        description="Absolute base URL used for render/share links. Falls back to the request URL.",
    )

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
