"""
Flexible ISA Deposit Calculator

Decides whether a deposit fits the remaining allowance and how it is split.

Rules:
1. Unused allowance       U = A - C   (may be negative after backdating)
2. Replacement allowance  R = W       (same-year withdrawals)
3. Total capacity         T = U + R
4. A deposit must be positive
5. A deposit may not exceed T
6. Deposits consume R first, then U

CRITICAL: Flexibility is a precondition. Only pass a non-zero
withdrawals_this_year for a provider/type the user has marked flexible.
This function does not check it.
"""

from decimal import Decimal, InvalidOperation

from isa_allowance.formatting import format_gbp
from isa_allowance.models.contribution import DepositEvaluation, FlexibleISAState
from isa_allowance.models.violations import CapacityExceeded, InvalidInput


ZERO = Decimal("0")


def evaluate_deposit(
    state: FlexibleISAState,
    deposit_amount: Decimal,
) -> DepositEvaluation:
    """
    Evaluate a prospective deposit against a tax year's allowance state.

    Args:
        state: Allowance, contributions and withdrawals for the tax year
        deposit_amount: Amount the user wants to pay in

    Returns:
        DepositEvaluation. When refused, the violation is attached and
        the updated figures are None.
    """
    unused = state.annual_allowance - state.contributions_this_year
    replacement = state.withdrawals_this_year
    capacity = unused + replacement

    opening = {
        "deposit_amount": ZERO,
        "unused_allowance": unused,
        "replacement_allowance": replacement,
        "total_capacity": capacity,
    }

    try:
        deposit_amount = Decimal(str(deposit_amount))
    except InvalidOperation:
        return _invalid("Deposit amount must be a number.", **opening)

    # NaN and infinity are reported against a zero deposit
    if not deposit_amount.is_finite():
        return _invalid("Deposit amount must be a finite number.", **opening)

    opening["deposit_amount"] = deposit_amount

    if deposit_amount <= 0:
        return _invalid("Deposit amount must be greater than £0.", **opening)

    if deposit_amount > capacity:
        return DepositEvaluation(
            allowed=False,
            capacity_exceeded=CapacityExceeded(
                message=(
                    f"Deposit of {format_gbp(deposit_amount)} exceeds available "
                    f"capacity of {format_gbp(capacity)}. You have "
                    f"{format_gbp(unused)} unused allowance and "
                    f"{format_gbp(replacement)} replacement allowance."
                ),
                field="deposit_amount",
                shortfall=deposit_amount - capacity,
                **opening,
            ),
            **opening,
        )

    # Replacement allowance first, then fresh allowance
    to_replacement = min(deposit_amount, replacement)
    remaining = deposit_amount - to_replacement
    to_unused = min(remaining, unused) if remaining > 0 else ZERO

    updated_unused = unused - to_unused
    updated_replacement = replacement - to_replacement

    return DepositEvaluation(
        allowed=True,
        updated_contributions=state.contributions_this_year + deposit_amount,
        updated_unused_allowance=updated_unused,
        updated_replacement_allowance=updated_replacement,
        total_remaining_capacity=updated_unused + updated_replacement,
        allocated_to_replacement=to_replacement,
        allocated_to_unused=to_unused,
        **opening,
    )


def remaining_allowance(contributed: Decimal, allowance: Decimal) -> Decimal:
    """Fresh allowance still unused, floored at zero."""
    return max(ZERO, allowance - contributed)


def _invalid(message: str, **opening: Decimal) -> DepositEvaluation:
    return DepositEvaluation(
        allowed=False,
        invalid_input=InvalidInput(message=message, field="deposit_amount"),
        **opening,
    )
