from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load .env early for local development
load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./breweries.db")

    # Security
    app_secret_key: str = os.getenv("APP_SECRET_KEY", "dev-secret-change-me")
    access_token_exp_minutes: int = int(os.getenv("ACCESS_TOKEN_EXP_MINUTES", str(60 * 24)))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str = os.getenv("LOG_DIR", "./logs")

    # Public file storage (uploaded brewery images live under <storage_dir>/breweries/uploads)
    storage_dir: str = os.getenv("STORAGE_DIR", "./storage")
    max_image_kb: int = int(os.getenv("MAX_IMAGE_KB", "2048"))


settings = Settings()
