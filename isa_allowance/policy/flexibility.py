"""
ISA Flexibility Policy

Whether a provider's ISA of a given type is "flexible" (same-year
withdrawals can be paid back in without using fresh allowance).

CRITICAL: A Lifetime ISA is never flexible. FlexibilityPolicy refuses to
be constructed with isa_type=LIFETIME and is_flexible=True, and the
registry never consults its table for Lifetime lookups.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from isa_allowance.models.contribution import ISAType
from isa_allowance.models.violations import PolicyRule, PolicyViolation


def settings_key(provider: str, isa_type: ISAType) -> str:
    """e.g. ("Monzo", CASH) -> "monzo_cash"."""
    return re.sub(r"\s+", "_", f"{provider.strip()}_{isa_type.value}").lower()


class FlexibilityPolicy(BaseModel):
    """The user's flexibility choice for one provider + ISA type."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    provider: str = Field(..., min_length=1, max_length=200)
    isa_type: ISAType
    is_flexible: bool
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode='after')
    def lifetime_is_never_flexible(self) -> 'FlexibilityPolicy':
        if self.isa_type.is_always_non_flexible and self.is_flexible:
            raise ValueError("A Lifetime ISA cannot be flexible")
        return self

    @property
    def key(self) -> str:
        return settings_key(self.provider, self.isa_type)


def lifetime_flexible_violation() -> PolicyViolation:
    return PolicyViolation(
        rule=PolicyRule.LIFETIME_NOT_FLEXIBLE,
        code=PolicyRule.LIFETIME_NOT_FLEXIBLE.value,
        field="is_flexible",
        message="A Lifetime ISA can never be flexible.",
    )


class FlexibilityRegistry:
    """
    In-memory table of flexibility policies keyed by settings_key.

    Loaded from and saved to a FlexibilityStoreInterface by the caller.
    """

    def __init__(self, policies: Optional[dict[str, FlexibilityPolicy]] = None):
        self._policies: dict[str, FlexibilityPolicy] = dict(policies or {})

    @property
    def policies(self) -> dict[str, FlexibilityPolicy]:
        return dict(self._policies)

    def get(self, provider: str, isa_type: ISAType) -> Optional[bool]:
        """
        The recorded choice, or None if the user has never been asked.

        Lifetime always answers False.
        """
        if isa_type.is_always_non_flexible:
            return False
        policy = self._policies.get(settings_key(provider, isa_type))
        return policy.is_flexible if policy else None

    def is_flexible(self, provider: str, isa_type: ISAType) -> bool:
        return bool(self.get(provider, isa_type))

    def needs_confirmation(self, provider: str, isa_type: ISAType) -> bool:
        return self.get(provider, isa_type) is None

    def set(
        self,
        provider: str,
        isa_type: ISAType,
        is_flexible: bool,
    ) -> Optional[PolicyViolation]:
        """Record a choice. Marking a Lifetime ISA flexible is refused."""
        if isa_type.is_always_non_flexible and is_flexible:
            return lifetime_flexible_violation()

        policy = FlexibilityPolicy(
            provider=provider,
            isa_type=isa_type,
            is_flexible=is_flexible,
        )
        self._policies[policy.key] = policy
        return None

    def delete(self, provider: str, isa_type: ISAType) -> bool:
        return self._policies.pop(settings_key(provider, isa_type), None) is not None
