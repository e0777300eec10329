"""
Lifetime ISA rules.

A Lifetime ISA shares the overall annual allowance but has its own,
smaller annual limit, earns a 25% government bonus, and can only be paid
into with one provider per tax year. It is never flexible.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Optional

from isa_allowance.calendar import TaxYear
from isa_allowance.formatting import format_gbp
from isa_allowance.ledger import filter_by_tax_year, lifetime_providers, total_for_type
from isa_allowance.models.contribution import (
    LIFETIME_ISA_BONUS_RATE,
    LIFETIME_ISA_MAX,
    Contribution,
    ISAType,
)
from isa_allowance.models.violations import PolicyRule, PolicyViolation


def lifetime_bonus(
    amount: Decimal,
    bonus_rate: Decimal = LIFETIME_ISA_BONUS_RATE,
    annual_limit: Decimal = LIFETIME_ISA_MAX,
) -> Decimal:
    """Government bonus on a year's Lifetime contributions (capped)."""
    return min(amount * bonus_rate, annual_limit * bonus_rate)


def remaining_lifetime_allowance(
    contributions: Iterable[Contribution],
    tax_year: TaxYear,
    annual_limit: Decimal = LIFETIME_ISA_MAX,
) -> Decimal:
    in_year = filter_by_tax_year(contributions, tax_year)
    used = total_for_type(in_year, ISAType.LIFETIME)
    return max(Decimal("0"), annual_limit - used)


def check_lifetime_provider(
    contributions: Iterable[Contribution],
    provider: str,
    tax_year: TaxYear,
) -> Optional[PolicyViolation]:
    """
    At most one Lifetime ISA provider per tax year.

    Provider names are compared case-insensitively.
    """
    in_year = filter_by_tax_year(contributions, tax_year)
    existing = [
        name for name in lifetime_providers(in_year)
        if name.casefold() != provider.strip().casefold()
    ]
    if not existing:
        return None

    return PolicyViolation(
        rule=PolicyRule.SINGLE_LIFETIME_PROVIDER,
        code=PolicyRule.SINGLE_LIFETIME_PROVIDER.value,
        field="provider",
        message=(
            f"You already pay into a Lifetime ISA with {existing[0]} in "
            f"{tax_year.label}. Only one Lifetime ISA provider is allowed "
            "per tax year."
        ),
    )


def check_lifetime_limit(
    contributions: Iterable[Contribution],
    amount: Decimal,
    tax_year: TaxYear,
    annual_limit: Decimal = LIFETIME_ISA_MAX,
) -> Optional[PolicyViolation]:
    remaining = remaining_lifetime_allowance(contributions, tax_year, annual_limit)
    if amount <= remaining:
        return None

    return PolicyViolation(
        rule=PolicyRule.LIFETIME_ANNUAL_LIMIT,
        code=PolicyRule.LIFETIME_ANNUAL_LIMIT.value,
        field="amount",
        message=(
            f"Lifetime ISA contributions are limited to {format_gbp(annual_limit)} "
            f"per year. You have {format_gbp(remaining)} left in {tax_year.label}."
        ),
    )
