"""
UK Tax Year Calendar

The UK tax year runs from 6 April to 5 April of the following year.
A TaxYear is a value object derived entirely from its start year.

Datetimes are interpreted as UK local time:
- naive datetimes are taken as already local
- aware datetimes are converted to Europe/London first
- plain dates are treated as midnight
"""

import math
from datetime import date, datetime, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, computed_field


UK_TIMEZONE = ZoneInfo("Europe/London")

TAX_YEAR_START_MONTH = 4
TAX_YEAR_START_DAY = 6

DateLike = Union[date, datetime]


class TaxYear(BaseModel):
    """
    A UK tax year: 6 April of start_year 00:00 up to, not including,
    6 April of start_year + 1. `end` is 5 April 23:59:59.999 for display.
    """
    model_config = ConfigDict(frozen=True)

    start_year: int

    @computed_field
    @property
    def end_year(self) -> int:
        return self.start_year + 1

    @computed_field
    @property
    def start(self) -> datetime:
        return datetime(self.start_year, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY)

    @computed_field
    @property
    def end(self) -> datetime:
        return datetime(self.end_year, 4, 5, 23, 59, 59, 999000)

    @computed_field
    @property
    def label(self) -> str:
        """Long label, e.g. "2024/25"."""
        return f"{self.start_year}/{str(self.end_year)[-2:]}"

    def __str__(self) -> str:
        return self.label


def to_uk_local(value: DateLike) -> datetime:
    """Normalise a date or datetime to a naive UK-local datetime."""
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        return value.astimezone(UK_TIMEZONE).replace(tzinfo=None)
    return value


def tax_year_boundaries(start_year: int) -> TaxYear:
    return TaxYear(start_year=start_year)


def tax_year_of(value: DateLike) -> TaxYear:
    """Classify a date into the tax year that contains it."""
    local = to_uk_local(value)
    before_start = (local.month, local.day) < (TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY)
    start_year = local.year - 1 if before_start else local.year
    return tax_year_boundaries(start_year)


def current_tax_year(now: Optional[DateLike] = None) -> TaxYear:
    """Tax year containing `now` (defaults to the current UK time)."""
    if now is None:
        now = datetime.now(UK_TIMEZONE)
    return tax_year_of(now)


def is_in_tax_year(value: DateLike, tax_year: TaxYear) -> bool:
    """Half-open: [6 April, next 6 April)."""
    local = to_uk_local(value)
    return tax_year.start <= local < tax_year_boundaries(tax_year.end_year).start


def available_tax_years(
    past_count: int,
    future_count: int = 0,
    now: Optional[DateLike] = None,
) -> list[TaxYear]:
    """
    Tax years for selection, newest first.

    Returns `future_count` years after the current one, the current year,
    then `past_count` years before it.
    """
    if past_count < 0 or future_count < 0:
        raise ValueError("past_count and future_count must be non-negative")

    current = current_tax_year(now)
    return [
        tax_year_boundaries(current.start_year + offset)
        for offset in range(future_count, -past_count - 1, -1)
    ]


def label(tax_year: TaxYear) -> str:
    """Two-digit label, e.g. start_year=2023 -> "23/24"."""
    return f"{str(tax_year.start_year)[-2:]}/{str(tax_year.end_year)[-2:]}"


def relative_label(tax_year: TaxYear, now: Optional[DateLike] = None) -> str:
    """
    Label annotated relative to the current year.

    e.g. "2025/26 (Next)", "2024/25 (Current)", "2023/24 (Previous)", "2022/23"
    """
    current = current_tax_year(now)
    suffix = {
        0: " (Current)",
        1: " (Next)",
        -1: " (Previous)",
    }.get(tax_year.start_year - current.start_year, "")
    return f"{tax_year.label}{suffix}"


def days_until_tax_year_end(now: Optional[DateLike] = None) -> int:
    """Whole days (rounded up) left in the current tax year, never negative."""
    local_now = to_uk_local(now) if now is not None else to_uk_local(datetime.now(UK_TIMEZONE))
    remaining = current_tax_year(local_now).end - local_now
    return max(0, math.ceil(remaining / timedelta(days=1)))

