"""
Configuration settings for decayforge.
Uses pydantic-settings so defaults can come from the environment or a .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Tracker defaults, overridable with DECAYFORGE_* environment variables."""
    model_config = SettingsConfigDict(
        env_prefix="DECAYFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_domain: str = Field(default="caffeine", description="Domain profile for new trackers")
    default_body_weight: float = Field(default=70.0, gt=0, description="Body weight in kg")
    default_metabolism: Literal["fast", "typical", "slow"] = Field(
        default="typical", description="Metabolism profile (fast, typical, slow)"
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
