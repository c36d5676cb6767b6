"""
Configuration Management for FundLedger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here: seed data for a fresh ledger
(currencies, exchange rates, language), where snapshots are written,
how the simulated cloud sync behaves and how logs are rendered.
"""

from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Seed values used when a user has no saved snapshot yet."""

    model_config = SettingsConfigDict(
        env_prefix="FUNDLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_currency: str = Field(
        default="BDT",
        min_length=2,
        description="Currency the informational exchange rates are quoted against"
    )
    default_currencies: str = Field(
        default="BDT,USD,MVR,EUR",
        description="Comma-separated list of currencies available on first run"
    )
    default_exchange_rates: str = Field(
        default="USD:110,MVR:7.14,EUR:120,BDT:1",
        description="Comma-separated CODE:RATE pairs versus the base currency"
    )
    default_language: str = Field(
        default="en",
        description="Language code used on first run"
    )
    backup_version: str = Field(
        default="1.2",
        description="Version string written into exported backup files"
    )

    @field_validator("base_currency")
    @classmethod
    def normalize_base_currency(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("default_exchange_rates")
    @classmethod
    def validate_rate_pairs(cls, v: str) -> str:
        """Fail at startup rather than on first use if a pair is malformed."""
        for pair in filter(None, (p.strip() for p in v.split(","))):
            code, sep, rate = pair.partition(":")
            if not sep or not code.strip():
                raise ValueError(f"Malformed exchange rate pair: {pair!r}")
            try:
                Decimal(rate.strip())
            except InvalidOperation:
                raise ValueError(f"Invalid exchange rate for {code}: {rate!r}")
        return v

    @property
    def currencies_list(self) -> list[str]:
        """Get default currencies as a de-duplicated, upper-cased list."""
        seen: list[str] = []
        for code in self.default_currencies.split(","):
            code = code.strip().upper()
            if code and code not in seen:
                seen.append(code)
        return seen

    @property
    def exchange_rates_map(self) -> dict[str, Decimal]:
        """Get default exchange rates as a dict."""
        rates = {}
        for pair in filter(None, (p.strip() for p in self.default_exchange_rates.split(","))):
            code, _, rate = pair.partition(":")
            rates[code.strip().upper()] = Decimal(rate.strip())
        return rates


class StorageSettings(BaseSettings):
    """Local snapshot storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FUNDLEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".fundledger",
        description="Directory holding one snapshot file per user key"
    )
    save_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a snapshot write is attempted"
    )
    audit_file_name: str = Field(
        default="audit.jsonl",
        description="Append-only audit log inside data_dir"
    )


class SyncSettings(BaseSettings):
    """Simulated cloud sync configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FUNDLEDGER_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    enabled: bool = Field(
        default=False,
        description="Whether identified users get their snapshot pushed to the cloud stub"
    )
    delay_seconds: float = Field(
        default=1.5,
        ge=0.0,
        le=60.0,
        description="Simulated network latency of one sync"
    )


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FUNDLEDGER_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum log level"
    )
    json_output: bool = Field(
        default=True,
        description="Render logs as JSON (False renders for a console)"
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


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

    # Sub-settings are built on access so one bad section
    # doesn't prevent the others from loading.

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with a
    `<name>_error` entry for each section that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "storage", "sync", "logging"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
