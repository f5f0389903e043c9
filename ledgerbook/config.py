"""Application configuration using pydantic-settings."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Configuration values for the bookkeeping service."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGERBOOK_", env_file=".env", env_file_encoding="utf-8"
    )

    app_name: str = Field(default="Ledgerbook")
    default_currency: str = Field(default="USD", min_length=3, max_length=3)
    seed_demo_data: bool = Field(
        default=False,
        description="Seed each new ledger with a sample chart of accounts.",
    )
    strict_entry_types: bool = Field(
        default=False,
        description="Reject single lines that decrease their account instead of warning.",
    )
    balance_epsilon: Decimal = Field(default=Decimal("0.01"), gt=0)
    store_path: Optional[Path] = Field(
        default=None,
        description="Directory holding one JSON ledger per user; in-memory when unset.",
    )
    jwt_secret: Optional[str] = Field(
        default=None,
        description="Key used to verify bearer tokens; every token is rejected when unset.",
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_user_claim: str = Field(default="userId")
    jwt_expires_minutes: int = Field(default=60, ge=1)
    max_transactions_returned: int = Field(default=500, ge=1)
    template_dir: Path = Field(default=Path(__file__).parent / "rendering" / "templates")
    log_level: str = Field(default="INFO")

    @field_validator("default_currency")
    @classmethod
    def _uppercase_currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("log_level")
    @classmethod
    def _uppercase_level(cls, value: str) -> str:
        return value.upper()


_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Return a cached instance of the application settings."""

    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


__all__ = ["AppSettings", "get_settings"]
