"""
Contribution Validation

DESIGN DECISION: Malformed amounts are rejected HERE, when a contribution
is created, so the ledger and the calculators only ever see well-formed
data.

Validation happens in two stages:

STAGE 1 - INPUT VALIDATION:
- Provider present
- Amount numeric, finite and positive

STAGE 2 - POLICY VALIDATION (needs the existing ledger):
- One Lifetime ISA provider per tax year
- Lifetime ISA annual limit

Stage 2 only runs if stage 1 passes. Capacity against the overall
allowance is NOT checked here; that is evaluate_deposit's job.

IMPORTANT: Validation NEVER silently fixes issues. Violations are returned
to the caller, never raised.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from isa_allowance.allowance.lifetime import (
    check_lifetime_limit,
    check_lifetime_provider,
)
from isa_allowance.calendar import tax_year_of
from isa_allowance.config import AllowanceSettings, get_settings
from isa_allowance.models.contribution import Contribution, ISAType
from isa_allowance.models.violations import InvalidInput, RuleViolation


RawAmount = Union[Decimal, int, float, str, None]


class ValidationResult(BaseModel):
    """Outcome of validating a prospective contribution."""

    contribution: Optional[Contribution] = None
    violations: list[RuleViolation] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def messages(self) -> list[str]:
        return [violation.message for violation in self.violations]


def parse_amount(raw: RawAmount) -> tuple[Optional[Decimal], Optional[InvalidInput]]:
    """
    Parse user input into a positive Decimal.

    Returns (amount, None) on success or (None, violation) on failure.
    Floats go through str() so 0.1 stays 0.1.
    """
    if raw is None or isinstance(raw, bool) or (isinstance(raw, str) and not raw.strip()):
        return None, InvalidInput(
            message="Please enter a contribution amount.",
            field="amount",
            code="amount_required",
        )

    try:
        amount = Decimal(str(raw).strip().replace(",", "").lstrip("£"))
    except InvalidOperation:
        return None, InvalidInput(
            message=f"'{raw}' is not a valid amount.",
            field="amount",
            code="amount_not_numeric",
        )

    if not amount.is_finite():
        return None, InvalidInput(
            message="Amount must be a finite number.",
            field="amount",
            code="amount_not_finite",
        )
    if amount <= 0:
        return None, InvalidInput(
            message="Amount must be greater than £0.",
            field="amount",
        )
    if amount != amount.quantize(Decimal("0.01")):
        return None, InvalidInput(
            message="Amount cannot have fractions of a penny.",
            field="amount",
            code="amount_too_precise",
        )

    return amount, None


class ContributionValidator:
    """
    Validates a prospective contribution before it enters the ledger.

    Stage 1 runs without the ledger; stage 2 needs existing contributions.
    """

    def __init__(self, settings: Optional[AllowanceSettings] = None):
        self._settings = settings or get_settings().allowance

    def _validate_input(
        self,
        provider: str,
        amount: RawAmount,
    ) -> tuple[Optional[Decimal], list[RuleViolation]]:
        """Stage 1: input validation."""
        violations: list[RuleViolation] = []

        if not provider or not provider.strip():
            violations.append(InvalidInput(
                message="Please select or enter an ISA provider.",
                field="provider",
                code="provider_required",
            ))

        parsed, amount_violation = parse_amount(amount)
        if amount_violation:
            violations.append(amount_violation)

        return parsed, violations

    def _validate_policy(
        self,
        existing: list[Contribution],
        provider: str,
        isa_type: ISAType,
        amount: Decimal,
        when: datetime,
    ) -> list[RuleViolation]:
        """Stage 2: ISA policy rules."""
        if isa_type is not ISAType.LIFETIME:
            return []

        tax_year = tax_year_of(when)
        checks = [
            check_lifetime_provider(existing, provider, tax_year),
            check_lifetime_limit(
                existing,
                amount,
                tax_year,
                annual_limit=self._settings.lifetime_annual_limit,
            ),
        ]
        return [violation for violation in checks if violation is not None]

    def validate(
        self,
        existing: Iterable[Contribution],
        provider: str,
        isa_type: ISAType,
        amount: RawAmount,
        when: datetime,
        notes: Optional[str] = None,
        exclude_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Run both stages and build the contribution if everything passes.

        Args:
            existing: The current ledger
            provider: Provider name as entered
            isa_type: Target ISA type
            amount: Raw amount (string input is accepted)
            when: Date the contribution is attributed to
            notes: Optional user notes
            exclude_id: Ledger entry to ignore (when editing it)

        Returns:
            ValidationResult with either a contribution or violations
        """
        ledger = [c for c in existing if c.id != exclude_id]

        parsed, violations = self._validate_input(provider, amount)
        if violations:
            return ValidationResult(violations=violations)

        violations = self._validate_policy(ledger, provider, isa_type, parsed, when)
        if violations:
            return ValidationResult(violations=violations)

        return ValidationResult(
            contribution=Contribution(
                isa_type=isa_type,
                provider=provider,
                amount=parsed,
                date=when,
                notes=notes,
            )
        )
