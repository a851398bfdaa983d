from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # -----------------------------
    # Database
    # -----------------------------
    DATABASE_URL: str
    SQL_ECHO: bool = False

    # -----------------------------
    # Message broker
    # -----------------------------
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # -----------------------------
    # Model services
    # -----------------------------
    CLASSIFICATION_SERVICE_URL: Optional[str] = None
    EXTRACTION_SERVICE_URL: Optional[str] = None
    CLASSIFICATION_TIMEOUT: float = 30.0
    EXTRACTION_TIMEOUT: float = 45.0
    HEALTH_CHECK_TIMEOUT: float = 5.0
    MODEL_RETRY_ATTEMPTS: int = 3
    MODEL_RETRY_DELAY: float = 1.0
    CLASSIFICATION_MAX_CHARS: int = 10_000
    EXTRACTION_MAX_CHARS: int = 15_000

    # -----------------------------
    # Pipeline batching
    # -----------------------------
    SYNC_FETCH_BATCH_SIZE: int = 10
    SYNC_FETCH_PAUSE: float = 0.1
    CLASSIFY_BATCH_SIZE: int = 5
    CLASSIFY_PAUSE: float = 0.5
    EXTRACT_BATCH_SIZE: int = 3
    EXTRACT_PAUSE: float = 1.0
    DEFAULT_CURRENCY: str = "USD"

    # -----------------------------
    # Gmail API Config
    # -----------------------------
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"
    GMAIL_MAX_RESULTS: int = 500

    # -----------------------------
    # Sync lock
    # -----------------------------
    SYNC_LOCK_TIMEOUT_MINUTES: int = 30
    SYNC_LOCK_SWEEP_INTERVAL: int = 300

    # -----------------------------
    # App Environment
    # -----------------------------
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "info"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance to avoid reloading .env repeatedly"""
    return Settings()


settings = get_settings()
