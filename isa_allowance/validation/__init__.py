"""Contribution validation package."""

from isa_allowance.validation.validator import (
    ContributionValidator,
    RawAmount,
    ValidationResult,
    parse_amount,
)

__all__ = [
    "ContributionValidator",
    "RawAmount",
    "ValidationResult",
    "parse_amount",
]
