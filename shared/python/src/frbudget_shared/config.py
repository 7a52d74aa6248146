"""
config.py — pydantic-settings Settings class.

All environment variables for the frbudget pipeline are declared here.

Usage:
    from frbudget_shared.config import settings
    print(settings.catalog_domain)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Opendatasoft catalog (data.economie.gouv.fr)
    # -------------------------------------------------------------------------
    catalog_domain: str = Field(default="https://data.economie.gouv.fr")
    catalog_search_limit: int = Field(default=100, ge=1, le=100)
    page_size: int = Field(default=100, ge=1, le=100)
    page_pause_ms: int = Field(default=120, ge=0)
    http_timeout: float = Field(default=60.0, gt=0)

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------
    output_dir: str = Field(default="public/data")
    # None → bundled frbudget_pipeline/assets/fallback
    fallback_dir: str | None = Field(default=None)

    # -------------------------------------------------------------------------
    # Normalization
    # -------------------------------------------------------------------------
    alias_table: Literal["standard", "extended"] = Field(default="extended")
    performance_dataset_id: str = Field(default="performance-de-la-depense")
    data_license: str = Field(default="Licence Ouverte 2.0")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    @field_validator("catalog_domain", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton: import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
