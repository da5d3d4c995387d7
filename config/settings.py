from typing import Annotated, List, Optional
import logging

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",  # Vite dev server
]

PRODUCTION_ORIGINS = [
    "https://realtime-video-app-frontend.vercel.app",
]


class Settings(BaseSettings):
    """Relay settings, read from the environment and .env"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=5001, ge=1, le=65535, alias="PORT")
    environment: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS, comma-separated in the environment
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default=DEFAULT_ORIGINS + PRODUCTION_ORIGINS, alias="ALLOWED_ORIGINS"
    )

    # Signaling behaviour
    strict: bool = Field(default=False, alias="SIGNALING_STRICT")
    evict_superseded: bool = Field(default=True, alias="SIGNALING_EVICT_SUPERSEDED")

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            value = [origin.strip() for origin in value.split(",") if origin.strip()]
        # If no origins are set explicitly, fall back to the defaults
        return value or DEFAULT_ORIGINS + PRODUCTION_ORIGINS

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"Unknown LOG_LEVEL: {value}")
        return value

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings() -> Settings:
    """Read settings from the environment, raising RuntimeError on bad values"""
    try:
        return Settings()
    except ValidationError as e:
        raise RuntimeError(f"Invalid configuration: {e}") from e


def validate_environment(settings: Optional[Settings] = None) -> Settings:
    """Validate the given settings, or the environment when none are given"""
    if settings is None:
        return load_settings()
    try:
        return Settings.model_validate(settings.model_dump())
    except ValidationError as e:
        raise RuntimeError(f"Invalid configuration: {e}") from e
