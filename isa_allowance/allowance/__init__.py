"""Allowance calculation package."""

from isa_allowance.allowance.flexible import evaluate_deposit, remaining_allowance
from isa_allowance.allowance.lifetime import (
    check_lifetime_limit,
    check_lifetime_provider,
    lifetime_bonus,
    remaining_lifetime_allowance,
)

__all__ = [
    "check_lifetime_limit",
    "check_lifetime_provider",
    "evaluate_deposit",
    "lifetime_bonus",
    "remaining_allowance",
    "remaining_lifetime_allowance",
]
