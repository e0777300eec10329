"""ISA flexibility policy package."""

from isa_allowance.policy.flexibility import (
    FlexibilityPolicy,
    FlexibilityRegistry,
    settings_key,
)

__all__ = ["FlexibilityPolicy", "FlexibilityRegistry", "settings_key"]
