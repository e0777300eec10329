"""
Core Data Models for the ISA Allowance Engine

These models define the strict schemas for all data flowing through the engine.
They are designed to:
1. Enforce type safety at runtime
2. Reject malformed amounts at the point of creation
3. Be serializable for storage and logging
4. Support the audit trail

DESIGN DECISION: Amounts are Decimal everywhere. Floats never enter the
allowance arithmetic; the only conversion to display strings happens in
isa_allowance.formatting.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from isa_allowance.models.violations import CapacityExceeded, InvalidInput


ANNUAL_ALLOWANCE = Decimal("20000")
LIFETIME_ISA_MAX = Decimal("4000")
LIFETIME_ISA_BONUS_RATE = Decimal("0.25")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ISAType(str, Enum):
    """
    The four ISA wrappers the allowance is shared between.

    Values match the stored wire format, so they must never be renamed.
    """
    CASH = "cash"
    STOCKS_AND_SHARES = "stocks_shares"
    LIFETIME = "lifetime"
    INNOVATIVE_FINANCE = "innovative_finance"

    @property
    def display_name(self) -> str:
        return ISA_TYPE_INFO[self].name

    @property
    def short_name(self) -> str:
        return ISA_TYPE_INFO[self].short_name

    @property
    def max_contribution(self) -> Decimal:
        return ISA_TYPE_INFO[self].max_contribution

    @property
    def is_always_non_flexible(self) -> bool:
        """A Lifetime ISA can never be flexible. This is not a user choice."""
        return self is ISAType.LIFETIME


class ISATypeInfo(BaseModel):
    """Display metadata for an ISA type."""
    model_config = ConfigDict(frozen=True)

    name: str
    short_name: str
    max_contribution: Decimal


ISA_TYPE_INFO: dict[ISAType, ISATypeInfo] = {
    ISAType.CASH: ISATypeInfo(
        name="Cash ISA",
        short_name="Cash",
        max_contribution=ANNUAL_ALLOWANCE,
    ),
    ISAType.STOCKS_AND_SHARES: ISATypeInfo(
        name="Stocks & Shares ISA",
        short_name="Stocks & Shares",
        max_contribution=ANNUAL_ALLOWANCE,
    ),
    ISAType.LIFETIME: ISATypeInfo(
        name="Lifetime ISA (LISA)",
        short_name="Lifetime",
        max_contribution=LIFETIME_ISA_MAX,
    ),
    ISAType.INNOVATIVE_FINANCE: ISATypeInfo(
        name="Innovative Finance ISA (IFISA)",
        short_name="Innovative Finance",
        max_contribution=ANNUAL_ALLOWANCE,
    ),
}


# =============================================================================
# CORE CONTRIBUTION MODEL
# =============================================================================

class Contribution(BaseModel):
    """
    One recorded deposit into an ISA.

    CRITICAL: `amount` is always strictly positive. Withdrawals are NOT
    negative contributions; they are tracked separately on FlexibleISAState.

    A withdrawn or deleted contribution stays in the ledger for history but
    is ignored by every allowance and score computation.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique contribution ID (never reused)"
    )

    isa_type: ISAType = Field(
        ...,
        description="Which ISA wrapper received the money"
    )
    provider: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Provider name as entered by the user"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount in GBP"
    )
    date: datetime = Field(
        ...,
        description="When the contribution is attributed to (may be backdated)"
    )

    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="User notes about this contribution"
    )
    account_number: Optional[str] = Field(
        default=None,
        max_length=50,
    )

    # Soft-state flags
    withdrawn: bool = False
    deleted: bool = False

    @field_validator('amount', mode='before')
    @classmethod
    def reject_non_finite(cls, v):
        """NaN and infinity never reach the ledger."""
        if isinstance(v, bool):
            raise ValueError("Amount must be numeric")
        try:
            value = Decimal(str(v))
        except InvalidOperation:
            raise ValueError(f"Amount must be numeric, got {v!r}")
        if not value.is_finite():
            raise ValueError("Amount must be a finite number")
        return value

    @field_validator('date', mode='before')
    @classmethod
    def promote_plain_date(cls, v):
        """A bare date is attributed to midnight of that day."""
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime(v.year, v.month, v.day)
        return v

    @property
    def is_eligible(self) -> bool:
        """Does this entry count towards allowance and score?"""
        return not (self.withdrawn or self.deleted)


# =============================================================================
# FLEXIBLE ALLOWANCE MODELS
# =============================================================================

class FlexibleISAState(BaseModel):
    """
    Per-tax-year allowance aggregate fed to the deposit calculator.

    contributions_this_year may exceed annual_allowance when the user has
    backdated entries; the calculator keeps the raw (negative) unused figure.
    """
    model_config = ConfigDict(frozen=True)

    annual_allowance: Decimal = Field(default=ANNUAL_ALLOWANCE, ge=0)
    contributions_this_year: Decimal = Field(default=Decimal("0"), ge=0)
    withdrawals_this_year: Decimal = Field(default=Decimal("0"), ge=0)


class DepositEvaluation(BaseModel):
    """
    Result of evaluating a prospective deposit.

    When `allowed` is False exactly one of `invalid_input` /
    `capacity_exceeded` is set and the updated figures are None.
    """
    model_config = ConfigDict(frozen=True)

    allowed: bool
    deposit_amount: Decimal

    # Opening position
    unused_allowance: Decimal
    replacement_allowance: Decimal
    total_capacity: Decimal

    # Position after the deposit (allowed only)
    updated_contributions: Optional[Decimal] = None
    updated_unused_allowance: Optional[Decimal] = None
    updated_replacement_allowance: Optional[Decimal] = None
    total_remaining_capacity: Optional[Decimal] = None
    allocated_to_replacement: Optional[Decimal] = None
    allocated_to_unused: Optional[Decimal] = None

    invalid_input: Optional[InvalidInput] = None
    capacity_exceeded: Optional[CapacityExceeded] = None

    @property
    def violation(self) -> Optional[InvalidInput | CapacityExceeded]:
        return self.invalid_input or self.capacity_exceeded

    @property
    def error_message(self) -> Optional[str]:
        violation = self.violation
        return violation.message if violation else None


class AllowanceBreach(BaseModel):
    """A tax year whose recorded eligible contributions exceed the allowance."""
    model_config = ConfigDict(frozen=True)

    tax_year_label: str
    total_contributed: Decimal
    annual_allowance: Decimal
    excess: Decimal
