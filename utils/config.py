"""
Configuration Utility - Environment Variables Management

Centralized configuration loading from .env files using pydantic-settings.
Type-safe access to all environment variables with validation.

Usage:
    from utils.config import settings

    db_path = settings.SQLITE_PATH
    max_limit = settings.PAGINATION_MAX_LIMIT
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend API Configuration
    API_PORT: int = Field(default=5000)
    API_HOST: str = Field(default="0.0.0.0")
    API_WORKERS: int = Field(default=4)
    CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001", "http://localhost:5000"]
    )

    # Database Configuration
    SQLITE_PATH: str = Field(default="/app/data/db/storefront.db")
    DB_TIMEOUT: float = Field(default=5.0)
    DB_RETRY_DELAY: float = Field(default=1.0)

    # Authentication
    JWT_SECRET: str = Field(default="change-me")
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_EXPIRES_MINUTES: int = Field(default=24 * 60)

    # Pagination
    PAGINATION_DEFAULT_LIMIT: int = Field(default=10)
    PAGINATION_MAX_LIMIT: int = Field(default=100)

    # File Uploads
    UPLOAD_DIR: str = Field(default="/app/data/uploads")
    MAX_FILE_SIZE: int = Field(default=10 * 1024 * 1024)

    # Redis Configuration (rate limiting)
    REDIS_URL: str = Field(default="redis://redis:6379/0")
    REDIS_MAX_CONNECTIONS: int = Field(default=10)
    RATE_LIMIT_ENABLED: bool = Field(default=False)
    RATE_LIMIT_WINDOW_SECONDS: int = Field(default=15 * 60)
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=100)
    RATE_LIMIT_AUTH_MAX_REQUESTS: int = Field(default=5)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")

    # Application Metadata
    ENVIRONMENT: str = Field(default="production")
    APP_NAME: str = Field(default="storefront-backend")
    APP_VERSION: str = Field(default="0.1.0")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Singleton Settings instance
    """
    return Settings()


# Global settings instance
settings = get_settings()
