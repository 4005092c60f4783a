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

    # Database Configuration
    # SQLite for local development; point at Postgres in deployed environments.
    DATABASE_URL: str = Field(default="sqlite:///./kickup.db")
    DB_ECHO: bool = Field(default=False)

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

    # Matchmaking
    MATCHMAKING_DEFAULT_RADIUS_KM: float = Field(default=10.0, gt=0)
    # Upper bound accepted at the HTTP boundary; the core itself has no limit.
    MATCHMAKING_MAX_RADIUS_KM: float = Field(default=500.0, gt=0)

    # Drill simulation
    # Chance that the simulated detector reports a touch on each poll.
    DETECTOR_HIT_PROBABILITY: float = Field(default=0.7, ge=0.0, le=1.0)
    SIMULATION_MAX_SECONDS: int = Field(default=600, ge=1)

    # Feedback sessions
    FEEDBACK_TIP_LIMIT: int = Field(default=3, ge=1, le=10)

    # Live drill/feedback sessions idle for longer than this are evicted.
    SESSION_TTL_SECONDS: int = Field(default=3600, ge=1)

    # Seed the player table with the demo roster when it is empty.
    SEED_DEMO_ROSTER: bool = Field(default=True)


# Global settings instance
settings = Settings()
