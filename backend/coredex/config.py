"""
config.py - Application Configuration

This module defines all configuration settings for the application.
Settings are loaded from environment variables or .env file.
"""
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from functools import lru_cache
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Calculate .env path at module level (project root / .env)
_ENV_FILE_PATH = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    """
    Application settings.

    All settings can be overridden by environment variables.
    For example, set GROQ_API_KEY in .env file.
    """

    # Application Info
    APP_NAME: str = "COREDEX AI News Analyzer"
    VERSION: str = "2.0.0"
    API_PREFIX: str = "/api"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./coredex.db"

    # Bearer credentials and sessions
    JWT_SECRET: str = "coredex_secret_key_2024_enhanced"
    JWT_ALGORITHM: str = "HS256"
    TOKEN_EXPIRE_DAYS: int = 7
    SESSION_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12

    # Remote scoring (Groq, OpenAI compatible chat completions)
    GROQ_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GROQ_API_KEY", "GROQ_KEY", "AI_API_KEY"),
    )
    GROQ_API_URL: Optional[str] = Field(
        default="https://api.groq.com/openai/v1/chat/completions",
        validation_alias=AliasChoices("GROQ_API_URL", "GROQ_URL"),
    )
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    GROQ_TEMPERATURE: float = 0.12
    GROQ_MAX_TOKENS: int = 900
    GROQ_TIMEOUT_SECONDS: float = 30.0
    GROQ_MAX_RETRIES: int = 2

    # Live stats stream
    STATS_INTERVAL_SECONDS: float = 3.0

    # Administrator seeded on first boot
    DEFAULT_ADMIN_NAME: str = "System Administrator"
    DEFAULT_ADMIN_EMAIL: str = "admin@coredex.ai"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"

    class Config:
        """Configuration for settings loading."""
        env_file = str(_ENV_FILE_PATH)
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env

    @property
    def groq_configured(self) -> bool:
        return bool(self.GROQ_API_KEY and self.GROQ_API_URL)


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.

    Uses lru_cache to ensure settings are only loaded once.

    Returns:
        Settings instance
    """
    settings = Settings()
    logger.info(f"Loaded settings for {settings.APP_NAME} {settings.VERSION}")
    logger.info(f"Groq model: {settings.GROQ_MODEL} (configured={settings.groq_configured})")
    return settings
