"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the application.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration (athlete test data, race results, exercise catalog)
    DATABASE_URL: str = Field(default="sqlite:///./program_engine.db")
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)
    API_RELOAD: bool = Field(default=False)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    CORS_ORIGINS: Optional[str] = Field(default=None)

    # Program rules override (YAML). Unset means built-in defaults.
    PROGRAM_RULES_PATH: Optional[str] = Field(default=None)

    # Zone resolution
    RACE_RESULT_MAX_AGE_DAYS: int = Field(default=90, ge=1)
    THRESHOLD_TEST_MAX_AGE_DAYS: int = Field(default=180, ge=1)
    # Minimum confidence for an elite pace estimate to be used: low, medium, high
    ELITE_MIN_CONFIDENCE: str = Field(default="medium")

    # Zone source lookups are issued concurrently before generation starts.
    ZONE_SOURCE_TIMEOUT_S: float = Field(default=10.0, gt=0)
    ZONE_SOURCE_MAX_WORKERS: int = Field(default=3, ge=1, le=16)


# Global settings instance
settings = Settings()
