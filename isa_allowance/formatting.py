"""
Currency formatting for display.

Used only when rendering messages. Never feed the output back into
computation.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union


Number = Union[Decimal, int, str]


def format_gbp(amount: Number) -> str:
    """
    Format an amount as whole pounds, e.g. 20000 -> "£20,000".

    Pence are rounded half-up; negatives render as "-£1,000".
    """
    value = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if value < 0:
        return f"-£{-value:,}"
    return f"£{value:,}"
