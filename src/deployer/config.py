"""Lightweight configuration for the deployment engine service."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Minimal application settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEPLOYER_", env_file=".env", env_file_encoding="utf-8"
    )

    data_dir: Path = Field(default=Path("sessions"), description="Where session snapshots live")
    catalog_path: Path = Field(
        default=Path("catalog"),
        description="Catalog JSON file or directory holding enemies/villains/allies/heroes files",
    )
    default_seed: str | None = Field(
        default=None,
        description="Seed used for new sessions when the client does not supply one",
    )
    log_level: str = Field(default="INFO", description="Root logger level for the dev server")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call the HTTP API",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
