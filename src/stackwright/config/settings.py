"""
Application settings using Pydantic.

Provides environment-based configuration loading with STACKWRIGHT_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # AWS
    aws_region: str = "us-east-1"
    aws_endpoint_url: str | None = None

    # Provisioning
    poll_interval_seconds: float = 5.0
    capabilities: list[str] = ["CAPABILITY_IAM"]
    max_retries: int = 3

    # Logging
    log_level: str = "info"
    log_format: str = "json"  # json, console

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "STACKWRIGHT_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
