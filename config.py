"""
Application configuration using Pydantic Settings
"""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from THRIFTLEDGER_* environment variables
    """
    # Record source
    BACKEND: Literal["local", "firestore"] = "local"
    DATA_PATH: str = "data/thriftledger.json"

    # Firestore (hosted document database)
    FIRESTORE_PROJECT_ID: str = ""
    FIRESTORE_DATABASE: str = "(default)"
    FIRESTORE_ID_TOKEN: str = ""
    FIRESTORE_API_KEY: str = ""
    REQUEST_TIMEOUT: float = 10.0

    # Application
    LOG_LEVEL: str = "INFO"
    LANGUAGE: str = "en"

    model_config = SettingsConfigDict(
        env_prefix="THRIFTLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance (singleton)
    """
    return Settings()
