"""Configuration management."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings pulled from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FORTUNE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Geometry
    epsilon: float = Field(
        default=1e-12,
        gt=0.0,
        lt=1e-3,
        description="Tolerance used by every geometric comparison",
    )
    duplicate_policy: Literal["merge", "reject"] = Field(
        default="merge",
        description="What to do with input points closer than epsilon",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Logging format (console or json)")


settings = Settings()
