"""Tests for the UK tax-year calendar."""

import pytest
from datetime import date, datetime, timedelta, timezone

from isa_allowance.calendar import (
    available_tax_years,
    current_tax_year,
    days_until_tax_year_end,
    is_in_tax_year,
    label,
    relative_label,
    tax_year_boundaries,
    tax_year_of,
)


class TestBoundaries:
    """Tests for tax-year boundaries and classification."""

    def test_boundaries(self):
        """Test 6 April start and 5 April end."""
        tax_year = tax_year_boundaries(2023)
        assert tax_year.start == datetime(2023, 4, 6, 0, 0, 0)
        assert tax_year.end == datetime(2024, 4, 5, 23, 59, 59, 999000)
        assert tax_year.end_year == 2024

    def test_start_of_year_round_trips(self):
        """Test the start of a year classifies back into that year."""
        for year in range(1999, 2041):
            tax_year = tax_year_boundaries(year)
            assert tax_year_of(tax_year.start) == tax_year
            assert tax_year_of(tax_year.end) == tax_year

    def test_year_split(self):
        """Test the last millisecond of 5 April and midnight on 6 April fall either side."""
        assert tax_year_of(datetime(2024, 4, 5, 23, 59, 59, 999000)).start_year == 2023
        assert tax_year_of(datetime(2024, 4, 6, 0, 0, 0)).start_year == 2024

    def test_january_belongs_to_previous_start_year(self):
        """Test January to 5 April belong to the year that began last April."""
        assert tax_year_of(datetime(2025, 1, 15)).start_year == 2024

    def test_leap_day(self):
        """Test 29 February is classified normally."""
        assert tax_year_of(date(2024, 2, 29)).start_year == 2023

    def test_plain_date(self):
        """Test a plain date is treated as midnight."""
        assert tax_year_of(date(2024, 4, 6)).start_year == 2024
        assert tax_year_of(date(2024, 4, 5)).start_year == 2023

    def test_aware_datetime_is_converted_to_uk_time(self):
        """Test 23:30 UTC on 5 April is already 6 April in BST."""
        late_utc = datetime(2024, 4, 5, 23, 30, tzinfo=timezone.utc)
        assert tax_year_of(late_utc).start_year == 2024

    def test_is_in_tax_year_inclusive(self):
        """Test both ends of the range are inclusive."""
        tax_year = tax_year_boundaries(2024)
        assert is_in_tax_year(tax_year.start, tax_year)
        assert is_in_tax_year(tax_year.end, tax_year)
        assert not is_in_tax_year(tax_year.start - timedelta(microseconds=1), tax_year)
        assert not is_in_tax_year(tax_year.end + timedelta(milliseconds=1), tax_year)

    def test_last_microseconds_of_year_agree(self):
        """Test the final sub-millisecond of 5 April is in range and classified the same way."""
        tax_year = tax_year_boundaries(2024)
        late = datetime(2025, 4, 5, 23, 59, 59, 999500)
        assert tax_year_of(late) == tax_year
        assert is_in_tax_year(late, tax_year)
        assert not is_in_tax_year(late, tax_year_boundaries(2025))

    def test_current_tax_year(self):
        """Test current_tax_year with an injected clock."""
        assert current_tax_year(datetime(2025, 3, 1)).start_year == 2024


class TestLabels:
    """Tests for tax-year labels."""

    def test_long_label(self):
        """Test the model label is YYYY/YY."""
        assert tax_year_boundaries(2023).label == "2023/24"
        assert str(tax_year_boundaries(1999)) == "1999/00"

    def test_short_label(self):
        """Test the two-digit label."""
        assert label(tax_year_boundaries(2023)) == "23/24"
        assert label(tax_year_boundaries(2099)) == "99/00"

    def test_relative_label(self):
        """Test Current / Next / Previous suffixes."""
        now = datetime(2024, 6, 1)
        assert relative_label(tax_year_boundaries(2024), now) == "2024/25 (Current)"
        assert relative_label(tax_year_boundaries(2025), now) == "2025/26 (Next)"
        assert relative_label(tax_year_boundaries(2023), now) == "2023/24 (Previous)"
        assert relative_label(tax_year_boundaries(2020), now) == "2020/21"


class TestAvailableTaxYears:
    """Tests for the tax-year selection list."""

    def test_newest_first(self):
        """Test future years, then current, then past."""
        years = available_tax_years(2, 1, now=datetime(2024, 6, 1))
        assert [y.label for y in years] == ["2025/26", "2024/25", "2023/24", "2022/23"]

    def test_current_only(self):
        """Test zero counts yield only the current year."""
        years = available_tax_years(0, now=datetime(2024, 6, 1))
        assert [y.start_year for y in years] == [2024]

    def test_negative_count_rejected(self):
        """Test negative counts are programming errors."""
        with pytest.raises(ValueError):
            available_tax_years(-1)


class TestDaysUntilEnd:
    """Tests for days_until_tax_year_end."""

    def test_rounds_up(self):
        """Test a partial day counts as a whole day."""
        assert days_until_tax_year_end(datetime(2025, 4, 4, 12, 0)) == 2
        assert days_until_tax_year_end(datetime(2025, 4, 5, 0, 0)) == 1

    def test_start_of_year(self):
        """Test the first instant of a year has a full year left."""
        assert days_until_tax_year_end(datetime(2024, 4, 6)) == 365
