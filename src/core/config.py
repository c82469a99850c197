"""
Application Configuration

Centralized settings management using Pydantic Settings.
Supports environment variables and .env files.
"""

from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # ==========================================================================
    # App Settings
    # ==========================================================================
    APP_NAME: str = "4K Poster Badge Service"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, PROD
    DEBUG: bool = True

    # ==========================================================================
    # Badge Settings
    # ==========================================================================
    # embedded: packaged PNG asset, remote: fetched from BADGE_URL,
    # synthesized: rendered with Pillow at the exact target size
    BADGE_SOURCE: Literal["embedded", "remote", "synthesized"] = "embedded"
    BADGE_URL: str = "https://assets.example.com/badges/4k-gold.png"
    BADGE_LABEL: str = "4K"

    # Placement geometry
    BADGE_SCALE: float = 0.15  # fraction of source width
    BADGE_MIN_WIDTH: int = 80
    BADGE_MAX_WIDTH: int = 500
    BADGE_INSET: int = 20  # px from top and right edges

    # Synthesized badge shape
    BADGE_ASPECT_RATIO: float = 2.0  # width:height
    BADGE_LABEL_FONT_RATIO: float = 0.5  # font size as fraction of badge width

    # Remote badge cache (process-wide, bytes only)
    BADGE_CACHE_ENABLED: bool = True
    BADGE_CACHE_TTL_SECONDS: int = 0  # 0 = keep until restart

    # ==========================================================================
    # Pipeline Settings
    # ==========================================================================
    JPEG_QUALITY: int = 90
    HTTP_TIMEOUT_SECONDS: float = 10.0
    MAX_IMAGE_SIZE_BYTES: int = 10485760  # 10MB

    # ==========================================================================
    # Logging Settings
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT_JSON: bool = True  # JSON for production, console for development

    # ==========================================================================
    # CORS Settings
    # ==========================================================================
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
