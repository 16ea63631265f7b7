"""
Application Configuration
Loads settings from environment variables.
"""

from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Wardrobe Studio API"
    DEBUG: bool = False
    API_BASE_URL: str = "http://localhost:8000"  # Base URL used by the jobs client

    # Database - SQLite for local dev, PostgreSQL for production
    DATABASE_URL: str = "sqlite:///./studio.db"

    # Redis
    REDIS_URL: str = "redis://localhost:6379"

    # Image Generation (Gemini)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash-image"  # Default for tagging, product shots, headshots
    GEMINI_MODEL_PRO: str = "gemini-3-pro-image-preview"  # Final composite of the staged outfit render
    GEMINI_MODEL_BODY_SHOT: str = "gemini-3-pro-image-preview"

    # Maximum item images per call, keyed by model family
    MODEL_INPUT_CEILING_STANDARD: int = 2
    MODEL_INPUT_CEILING_PRO: int = 7

    # Storage - S3 settings (optional)
    S3_BUCKET: str = ""
    S3_ENDPOINT: str = ""
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    S3_REGION: str = "us-east-1"

    # Local storage fallback
    LOCAL_STORAGE_PATH: str = "./uploads"
    USE_LOCAL_STORAGE: bool = True

    # Google Cloud Storage
    USE_GCS: bool = False
    GCS_BUCKET_MEDIA: str = "studio-media"
    GCP_PROJECT_ID: str = ""

    # Auth - access tokens are issued elsewhere, we only verify them
    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"
    JWT_ISSUER: str = "studio"
    JWT_AUDIENCE: str = "studio_clients"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8081"]

    # Worker settings
    JOB_TIMEOUT_EXECUTION: int = 300

    # Tagging
    TAG_MIN_CONFIDENCE: float = 0.5

    # Client polling (seconds)
    POLL_INTERVAL: float = 2.0  # First delay, doubled after each non-terminal read
    POLL_MAX_INTERVAL: float = 10.0
    POLL_TIMEOUT: float = 75.0
    FALLBACK_INTERVAL: float = 5.0
    FALLBACK_TIMEOUT: float = 150.0

    @field_validator('GEMINI_API_KEY', 'JWT_SECRET', mode='before')
    @classmethod
    def strip_secrets(cls, v):
        """Strip whitespace and newlines from secrets loaded from files."""
        if isinstance(v, str):
            return v.strip()
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
