"""Shared fixtures for the ISA allowance tests."""

from datetime import datetime
from decimal import Decimal

import pytest

from isa_allowance.calendar import tax_year_boundaries
from isa_allowance.config import AllowanceSettings
from isa_allowance.models.contribution import Contribution, ISAType


@pytest.fixture
def tax_year_2024():
    """The 2024/25 tax year."""
    return tax_year_boundaries(2024)


@pytest.fixture
def allowance_settings():
    return AllowanceSettings(
        annual_allowance=Decimal("20000"),
        lifetime_annual_limit=Decimal("4000"),
        lifetime_bonus_rate=Decimal("0.25"),
    )


@pytest.fixture
def make_contribution():
    """Factory for contributions with sensible defaults."""

    def _make(
        amount="1000",
        when=datetime(2024, 5, 1, 12, 0),
        isa_type=ISAType.CASH,
        provider="Monzo",
        **kwargs,
    ) -> Contribution:
        return Contribution(
            isa_type=isa_type,
            provider=provider,
            amount=Decimal(str(amount)),
            date=when,
            **kwargs,
        )

    return _make
