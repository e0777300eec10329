"""Configuration package."""

from isa_allowance.config.settings import (
    AllowanceSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AllowanceSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
