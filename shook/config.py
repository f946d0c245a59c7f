"""
Application configuration using pydantic-settings.
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Shook"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 5000

    # Projects file (YAML)
    config_file: str = "config.yml"

    # Repository cache
    cache_root: str = "/var/cache/shook"
    git_timeout: Optional[int] = None  # seconds, None waits forever

    # Webhook
    max_payload_size: int = 262_144  # 256 KiB

    # Deploy commands
    stop_on_failure: bool = False
    command_timeout: Optional[int] = None  # seconds

    # Deploy scheduler
    task_max_memory: int = 1000  # max finished tasks to keep in memory
    shutdown_grace_period: int = 30  # seconds

    model_config = SettingsConfigDict(
        env_prefix="SHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
