"""
Rule Violations

Expected business-rule failures are VALUES, not exceptions. Every pure
function in the engine that can refuse an input returns one of these models
so the caller can render an actionable message.

Exceptions are reserved for storage I/O failures and programming errors.
"""

from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ViolationKind(str, Enum):
    VALIDATION = "validation"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    POLICY = "policy"


class PolicyRule(str, Enum):
    """Hardcoded ISA business rules that a write can break."""
    SINGLE_LIFETIME_PROVIDER = "single_lifetime_provider"
    LIFETIME_NOT_FLEXIBLE = "lifetime_not_flexible"
    LIFETIME_ANNUAL_LIMIT = "lifetime_annual_limit"


class RuleViolation(BaseModel):
    """Base class for all business-rule violations."""
    model_config = ConfigDict(frozen=True)

    kind: ViolationKind
    code: str = Field(..., description="Stable machine-readable code")
    message: str = Field(..., description="Human-readable explanation")
    field: Optional[str] = Field(
        default=None,
        description="Input field the violation relates to, if any"
    )

    def to_log_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class InvalidInput(RuleViolation):
    """A non-positive, non-finite or non-numeric amount, or a blank required field."""
    kind: Literal[ViolationKind.VALIDATION] = ViolationKind.VALIDATION
    code: str = "amount_must_be_positive"


class CapacityExceeded(RuleViolation):
    """
    A deposit larger than unused + replacement allowance.

    Carries the full breakdown so the caller never has to recompute it.
    """
    kind: Literal[ViolationKind.CAPACITY_EXCEEDED] = ViolationKind.CAPACITY_EXCEEDED
    code: str = "capacity_exceeded"

    deposit_amount: Decimal
    shortfall: Decimal
    unused_allowance: Decimal
    replacement_allowance: Decimal
    total_capacity: Decimal


class PolicyViolation(RuleViolation):
    """A write that breaks a fixed ISA rule."""
    kind: Literal[ViolationKind.POLICY] = ViolationKind.POLICY
    code: str = "policy"

    rule: PolicyRule
