"""Configuration management for the Dify Slack bot."""

from functools import lru_cache
from pydantic import field_validator
from pydantic_settings import BaseSettings

from .common.enums import ModelName


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Slack Configuration
    slack_app_token: str
    slack_bot_token: str
    slack_signing_secret: str = ""

    # Dify Configuration
    dify_api_key: str
    dify_base_url: str = "https://api.dify.ai/v1"
    dify_timeout: float = 60.0

    # Bot behaviour
    default_model: ModelName = ModelName.CLAUDE
    dedup_capacity: int = 100
    dedup_trim_interval: float = 60.0
    preference_capacity: int = 1000
    show_thinking_indicator: bool = True
    config_path: str = "config/config.yaml"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @field_validator("slack_app_token", "slack_bot_token", "dify_api_key")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()


@lru_cache
def get_settings() -> Settings:
    """Get singleton settings instance."""
    return Settings()
