"""
Application Configuration
Uses pydantic-settings for validation and type safety
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Union, Any
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # App Info
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Storage - "sql" persists days through SQLAlchemy, "memory" keeps them in-process
    STORAGE_BACKEND: str = "sql"
    DATABASE_URL: str = "sqlite+aiosqlite:///./sitepulse.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 0

    # JWT verification (tokens are issued elsewhere)
    JWT_SECRET_KEY: str = "your-super-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"

    # CORS
    CORS_ORIGINS: Union[List[str], str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "chrome-extension://*",
    ]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> List[str]:
        if isinstance(v, str) and not v.strip().startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Rate Limiting (per user, sliding window)
    TRACKING_RATE_LIMIT: int = 100
    TRACKING_RATE_WINDOW_MS: int = 15 * 60 * 1000
    REPORTS_RATE_LIMIT: int = 50
    REPORTS_RATE_WINDOW_MS: int = 15 * 60 * 1000
    SYNC_RATE_LIMIT: int = 50
    SYNC_RATE_WINDOW_MS: int = 15 * 60 * 1000
    USERS_RATE_LIMIT: int = 30
    USERS_RATE_WINDOW_MS: int = 15 * 60 * 1000
    RATE_LIMIT_CLEANUP_PROBABILITY: float = 0.01

    # Tracking Settings
    MIN_VISIT_MS: int = 1000  # Visits shorter than this are dropped on sync
    TREND_LEGACY_HALF_DIVISOR: bool = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance"""
    return Settings()

