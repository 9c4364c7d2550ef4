"""Application configuration objects."""
from __future__ import annotations

import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings used to configure the assistant."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    telegram_bot_token: str = Field(..., min_length=1, description="Chat transport token.")
    cohere_api_key: str = Field(..., min_length=1, description="Generative backend API key.")
    database_url: str = Field(..., min_length=1, description="SQLAlchemy compatible database URL.")

    app_name: str = Field(
        default="Stock Assistant",
        description="Human friendly name for the HTTP surface.",
    )
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Deployment environment flag used for logging.",
    )
    echo_sql: bool = Field(
        default=False,
        description="Enable SQL echo logging for debugging.",
    )
    log_level: str = Field(default="INFO")

    generation_backend: Literal["generate", "chat"] = Field(
        default="generate",
        description="Request shape used for the generative-text backend.",
    )
    generation_url: str = Field(default="https://api.cohere.ai/v1/generate")
    generation_model: str = Field(default="command-xlarge-nightly")
    generation_max_tokens: int = Field(default=100, gt=0)
    generation_timeout: float = Field(default=60.0, gt=0)

    export_command: str = Field(
        default="exportar stock",
        description="Literal phrase that triggers a stock export.",
    )
    export_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))

    image_trigger: str = Field(default="sorpresa")
    image_path: Path = Field(default=Path("assets/sorpresa.jpg"))

    http_host: str = Field(default="0.0.0.0")
    http_port: int = Field(default=8000)

    @field_validator("database_url")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        if value.startswith("postgres://"):
            value = "postgresql+asyncpg://" + value[len("postgres://"):]
        elif value.startswith("postgresql://"):
            value = "postgresql+asyncpg://" + value[len("postgresql://"):]
        if value.startswith("sqlite") and ":memory:" not in value and "///" not in value:
            raise ValueError(
                "SQLite database URLs should be in the form sqlite+aiosqlite:///path/to/db"
            )
        return value

    @field_validator("export_command", "image_trigger")
    @classmethod
    def _normalize_literal(cls, value: str) -> str:
        return value.strip().lower()


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


__all__ = ["Settings", "get_settings"]
