"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every setting has a working default so the core runs (and tests pass)
without any environment at all.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Storage backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXPENSE_TRACKER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="memory",
        pattern="^(memory|json)$",
        description="Storage backend: in-memory or JSON files on disk"
    )
    data_directory: Path = Field(
        default=Path("data"),
        description="Directory holding one JSON file per collection"
    )
    key_prefix: str = Field(
        default="expense-tracker-",
        description="Prefix prepended to every collection key"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failed collection write is attempted"
    )
    audit_log_limit: int = Field(
        default=1000,
        ge=1,
        description="Most recent audit events kept in the audit-log collection"
    )

    @field_validator('data_directory', mode='before')
    @classmethod
    def expand_data_directory(cls, v) -> Path:
        """Expand ~ in configured paths."""
        return Path(v).expanduser()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXPENSE_TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Currency (single currency only)
    currency_symbol: str = Field(
        default="₹",
        description="Symbol used when formatting amounts"
    )

    # Settlement
    settlement_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        le=1,
        description="Positions and transfers at or below this are treated as settled"
    )

    # Backup format
    export_version: str = Field(
        default="1.0.0",
        description="Version stamped on exported backup documents"
    )

    # Sanity limit
    max_amount: Decimal = Field(
        default=Decimal("100000000"),
        gt=0,
        description="Largest single amount accepted by any ledger"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def app(self) -> AppSettings:
        return AppSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings sections.

    Returns a dict of {section_name: is_valid}, plus
    {section_name}_error entries describing failures.
    """
    results = {}
    settings = get_settings()

    for section in ("app", "storage"):
        try:
            getattr(settings, section)
            results[section] = True
        except ValueError as e:
            results[section] = False
            results[f"{section}_error"] = str(e)

    return results
