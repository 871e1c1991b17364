"""Application settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Blog API"
    app_env: str = "local"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./blog.db"
    database_echo: bool = False

    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    cors_allow_origins: list[str] = ["http://localhost:3000"]

    default_posts_page_size: int = 5
    default_user_posts_page_size: int = 10
    default_likes_page_size: int = 20
    default_users_page_size: int = 10
    most_liked_window_days: int = 30


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]
