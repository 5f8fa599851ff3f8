"""
Configuration management for the Provenance Registry.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = Field(default="Provenance Registry")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_workers: int = Field(default=1)

    # Database
    database_url: str = Field(default="sqlite:///./provenance_registry.db")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    # Session
    session_header: str = Field(
        default="X-Account-Id",
        description="Header carrying the authenticated account id, set by the auth gateway.",
    )

    # Certificates
    certificate_number_prefix: str = Field(default="PROV-")
    certificate_number_length: int = Field(default=8, ge=4, le=32)
    certificate_number_max_attempts: int = Field(default=10, ge=1)
    use_database_certificate_generator: bool = Field(
        default=True,
        description="Try the generate_certificate_number() database function before the client-side fallback.",
    )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
