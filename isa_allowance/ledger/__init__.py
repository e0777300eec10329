"""Contribution ledger aggregation package."""

from isa_allowance.ledger.aggregation import (
    ProviderBreakdown,
    build_flexible_state,
    by_tax_year,
    eligible,
    filter_by_tax_year,
    find_allowance_breaches,
    group_by_type_and_provider,
    lifetime_providers,
    providers_for,
    total_contributed,
    total_for_type,
)

__all__ = [
    "ProviderBreakdown",
    "build_flexible_state",
    "by_tax_year",
    "eligible",
    "filter_by_tax_year",
    "find_allowance_breaches",
    "group_by_type_and_provider",
    "lifetime_providers",
    "providers_for",
    "total_contributed",
    "total_for_type",
]
