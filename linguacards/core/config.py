"""
LinguaCards - Core Configuration
Pydantic Settings for application configuration with environment variable support
"""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "LinguaCards Review Core"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "linguacards"

    @property
    def DATABASE_URL(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Scheduling
    SCHEDULING_ENGINE: Literal["sm2", "fsrs"] = "sm2"
    FSRS_DESIRED_RETENTION: float = 0.9
    LEARNED_THRESHOLD_DAYS: int = 21

    # Answer grading (typing mode)
    MATCH_EXACT_THRESHOLD: float = 0.8
    MATCH_PARTIAL_THRESHOLD: float = 0.6
    FAST_ANSWER_SECONDS: float = 5.0

    # Due selection
    MIN_REVIEW_BATCH: int = 5
    DEFAULT_DAILY_GOAL: int = 20

    # Reminders
    REMINDERS_ENABLED: bool = True
    DEFAULT_TIMEZONE: str = "Europe/Moscow"
    REMINDER_WINDOW_SECONDS: int = 30
    REMINDER_TICK_SECONDS: int = 60

    # Review sessions
    SESSION_IDLE_TIMEOUT_MINUTES: int = 10
    SESSION_SWEEP_SECONDS: int = 60

    # CORS - stored as comma-separated string
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://localhost:5173"

    @property
    def CORS_ORIGINS(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
