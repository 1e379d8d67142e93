from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    CORS_ORIGIN_REGEX: Optional[str] = None
    MONGODB_URI: Optional[str] = None
    MONGODB_DB: str = "duoquiz"
    QUESTIONS_DIR: Optional[str] = None
    LOG_LEVEL: str = "INFO"
    EVENT_PAGE_LIMIT: int = 200
    CONNECTION_QUEUE_SIZE: int = 64


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
