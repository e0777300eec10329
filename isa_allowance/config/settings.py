"""
Configuration Management for the ISA Allowance Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here. The pure engine
functions take allowance figures as parameters; settings only supply the
defaults the orchestrator passes in.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AllowanceSettings(BaseSettings):
    """ISA allowance figures. These change by HMRC announcement only."""

    model_config = SettingsConfigDict(
        env_prefix="ISA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    annual_allowance: Decimal = Field(
        default=Decimal("20000"),
        gt=0,
        description="Overall annual ISA allowance across all types"
    )
    lifetime_annual_limit: Decimal = Field(
        default=Decimal("4000"),
        gt=0,
        description="Annual Lifetime ISA limit (counts towards the overall allowance)"
    )
    lifetime_bonus_rate: Decimal = Field(
        default=Decimal("0.25"),
        ge=0,
        le=1,
        description="Government bonus rate on Lifetime ISA contributions"
    )

    # Tax year selection window
    history_years_back: int = Field(
        default=5,
        ge=0,
        description="How many past tax years to offer"
    )
    history_years_forward: int = Field(
        default=1,
        ge=0,
        description="How many future tax years to offer"
    )

    @field_validator('lifetime_annual_limit')
    @classmethod
    def lifetime_within_overall(cls, v: Decimal, info: ValidationInfo) -> Decimal:
        overall = info.data.get("annual_allowance")
        if overall is not None and v > overall:
            raise ValueError("Lifetime limit cannot exceed the overall allowance")
        return v


class StorageSettings(BaseSettings):
    """Local JSON storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ISA_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".isa_allowance",
        description="Directory holding all data files"
    )
    contributions_file: str = Field(
        default="contributions.json",
        description="Contribution ledger blob"
    )
    flexibility_file: str = Field(
        default="isa_settings.json",
        description="Per provider/type flexibility settings"
    )
    audit_file: str = Field(
        default="audit_log.jsonl",
        description="Append-only audit log"
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for each file operation before giving up"
    )

    @property
    def contributions_path(self) -> Path:
        return self.data_dir / self.contributions_file

    @property
    def flexibility_path(self) -> Path:
        return self.data_dir / self.flexibility_file

    @property
    def audit_path(self) -> Path:
        return self.data_dir / self.audit_file


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
    def allowance(self) -> AllowanceSettings:
        return AllowanceSettings()

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
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error" entries
    describing any failure. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("allowance", "storage"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
