"""Application configuration using Pydantic Settings"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent.parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Twitch application
    twitch_client_id: str = Field(..., description="Twitch OAuth Client ID")
    twitch_client_secret: str = Field(..., description="Twitch OAuth Client Secret")
    twitch_webhook_secret: str = Field(
        ..., min_length=10, description="Shared secret for EventSub webhook signatures"
    )

    # Server URLs
    frontend_url: str = Field(default="http://localhost:3000", description="Frontend URL for CORS")
    public_url: str = Field(
        default="", description="Public base URL used for the EventSub callback"
    )

    # Environment
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")

    # Live-update streams
    heartbeat_interval: float = Field(
        default=30.0, gt=0, description="Seconds between heartbeat frames on each stream"
    )
    connection_buffer_size: int = Field(
        default=100, gt=0, description="Max frames buffered per stream before it is dropped"
    )
    recent_entries_limit: int = Field(
        default=20, ge=0, description="Entries returned by the giveaway stats endpoint"
    )

    # Request limits
    rate_limit_enabled: bool = Field(default=True, description="Throttle the /api routes per client")
    api_rate_limit: str = Field(
        default="100 per 15 minutes", description="Per-client /api limit in limits notation"
    )
    webhook_max_body_bytes: int = Field(
        default=1_048_576, gt=0, description="Largest accepted EventSub delivery body"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS allowed origins"""
        return [self.frontend_url]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()  # type: ignore[call-arg]
