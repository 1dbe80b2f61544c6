"""Configuration management for Training Progress Service."""

from typing import List, Optional
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
import json


class Settings(BaseSettings):
    """Application settings with validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    # Application
    APP_NAME: str = "Training Progress Service"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production|test)$")
    SERVICE_NAME: str = "training-progress-service"
    SERVICE_PORT: int = 8006

    # Database (SQLAlchemy async URL, e.g. postgresql+asyncpg://... or sqlite+aiosqlite://...)
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40
    DATABASE_ECHO: bool = False

    # Redis Cache
    REDIS_URL: str = "redis://localhost:6379"
    CATALOG_CACHE_TTL: int = 300  # 5 minutes

    # Content catalog
    CATALOG_BACKEND: str = Field(default="http", pattern="^(http|memory)$")
    CONTENT_SERVICE_URL: str = "http://localhost:8002"
    CATALOG_FIXTURE_PATH: Optional[str] = None
    HTTP_TIMEOUT: float = 30.0

    # JWT
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 60

    # Completion rules
    DEFAULT_PASS_THRESHOLD: int = Field(default=70, ge=0, le=100)

    # Progress ledger
    LEDGER_WRITE_TIMEOUT: float = 5.0  # seconds
    LEDGER_RETRY_ATTEMPTS: int = 3
    LEDGER_RETRY_BACKOFF: float = 0.2  # seconds, doubled per attempt

    # Logging
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    LOG_FORMAT: str = Field(default="json", pattern="^(json|plain)$")

    # CORS
    CORS_ORIGINS: List[str] = Field(default_factory=list)

    @field_validator("CORS_ORIGINS", mode="before")
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Monitoring
    ENABLE_METRICS: bool = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
