"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    dam_base_url: str
    dam_username: str
    dam_password: str
    dam_timeout_seconds: float = 15.0
    dam_max_page_size: int = 1000
    dam_assign_path: str = "/api/ItemData/BatchChange"
    dam_keyword_tag: str | None = "Keywords"
    api_token: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    analysis_max_tags: int = 20
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

