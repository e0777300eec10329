"""UK tax-year calendar package."""

from isa_allowance.calendar.tax_year import (
    UK_TIMEZONE,
    TaxYear,
    available_tax_years,
    current_tax_year,
    days_until_tax_year_end,
    is_in_tax_year,
    label,
    relative_label,
    tax_year_boundaries,
    tax_year_of,
    to_uk_local,
)

__all__ = [
    "UK_TIMEZONE",
    "TaxYear",
    "available_tax_years",
    "current_tax_year",
    "days_until_tax_year_end",
    "is_in_tax_year",
    "label",
    "relative_label",
    "tax_year_boundaries",
    "tax_year_of",
    "to_uk_local",
]
