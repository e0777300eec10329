"""
Contribution Ledger Aggregation

DESIGN DECISION: The ledger is a list owned by the caller. Every function
here is a pure transform over that list; nothing is cached or mutated.

Withdrawn and deleted entries are kept in the list for history but are
excluded from every total. Allowance limits are NOT enforced here: a
backdated edit can push a past year over the allowance, and that is
reported through find_allowance_breaches rather than corrected.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from isa_allowance.calendar import TaxYear, is_in_tax_year, tax_year_of
from isa_allowance.models.contribution import (
    ANNUAL_ALLOWANCE,
    AllowanceBreach,
    Contribution,
    FlexibleISAState,
    ISAType,
)


ZERO = Decimal("0")


class ProviderBreakdown(BaseModel):
    """Per-provider totals for one ISA type, in first-seen provider order."""

    providers: dict[str, Decimal] = Field(default_factory=dict)
    total: Decimal = ZERO


def eligible(contributions: Iterable[Contribution]) -> list[Contribution]:
    """Entries that count towards allowance and score."""
    return [c for c in contributions if c.is_eligible]


def filter_by_tax_year(
    contributions: Iterable[Contribution],
    tax_year: TaxYear,
) -> list[Contribution]:
    return [c for c in contributions if is_in_tax_year(c.date, tax_year)]


def total_contributed(contributions: Iterable[Contribution]) -> Decimal:
    return sum((c.amount for c in eligible(contributions)), ZERO)


def group_by_type_and_provider(
    contributions: Iterable[Contribution],
) -> dict[ISAType, ProviderBreakdown]:
    """
    Group eligible contributions by ISA type, then by provider.

    Types without eligible contributions are absent from the result.
    """
    groups: dict[ISAType, ProviderBreakdown] = {}

    for contribution in eligible(contributions):
        breakdown = groups.setdefault(contribution.isa_type, ProviderBreakdown())
        providers = breakdown.providers
        providers[contribution.provider] = (
            providers.get(contribution.provider, ZERO) + contribution.amount
        )
        breakdown.total += contribution.amount

    return groups


def by_tax_year(contributions: Iterable[Contribution]) -> dict[str, Decimal]:
    """
    Eligible totals keyed by tax-year label ("2024/25").

    Years without contributions are absent; fill gaps with
    calendar.available_tax_years if a continuous series is needed.
    """
    totals: dict[str, Decimal] = {}
    for contribution in eligible(contributions):
        key = tax_year_of(contribution.date).label
        totals[key] = totals.get(key, ZERO) + contribution.amount
    return totals


def providers_for(
    contributions: Iterable[Contribution],
    isa_type: ISAType,
) -> list[str]:
    """Distinct providers holding eligible contributions of a type."""
    seen: dict[str, None] = {}
    for contribution in eligible(contributions):
        if contribution.isa_type is isa_type:
            seen.setdefault(contribution.provider, None)
    return list(seen)


def lifetime_providers(contributions: Iterable[Contribution]) -> list[str]:
    return providers_for(contributions, ISAType.LIFETIME)


def total_for_type(
    contributions: Iterable[Contribution],
    isa_type: ISAType,
) -> Decimal:
    return total_contributed(c for c in contributions if c.isa_type is isa_type)


def build_flexible_state(
    contributions: Iterable[Contribution],
    tax_year: TaxYear,
    withdrawals_this_year: Decimal = ZERO,
    annual_allowance: Decimal = ANNUAL_ALLOWANCE,
) -> FlexibleISAState:
    """Aggregate a tax year's ledger into the calculator's input state."""
    in_year = filter_by_tax_year(contributions, tax_year)
    return FlexibleISAState(
        annual_allowance=annual_allowance,
        contributions_this_year=total_contributed(in_year),
        withdrawals_this_year=withdrawals_this_year,
    )


def find_allowance_breaches(
    contributions: Iterable[Contribution],
    annual_allowance: Decimal = ANNUAL_ALLOWANCE,
    tax_year: Optional[TaxYear] = None,
) -> list[AllowanceBreach]:
    """
    Tax years whose eligible total exceeds the allowance.

    Restricted to one tax year when `tax_year` is given.
    """
    if tax_year is not None:
        contributions = filter_by_tax_year(contributions, tax_year)

    return [
        AllowanceBreach(
            tax_year_label=year_label,
            total_contributed=total,
            annual_allowance=annual_allowance,
            excess=total - annual_allowance,
        )
        for year_label, total in sorted(by_tax_year(contributions).items())
        if total > annual_allowance
    ]
