"""Tests for ledger aggregation."""

from datetime import datetime
from decimal import Decimal

from isa_allowance.allowance import evaluate_deposit
from isa_allowance.ledger import (
    build_flexible_state,
    by_tax_year,
    eligible,
    filter_by_tax_year,
    find_allowance_breaches,
    group_by_type_and_provider,
    lifetime_providers,
    providers_for,
    total_contributed,
)
from isa_allowance.models.contribution import ISAType


class TestGrouping:
    """Tests for group_by_type_and_provider."""

    def test_groups_by_type_then_provider(self, make_contribution):
        """Test totals per provider and per type."""
        contributions = [
            make_contribution("1000", provider="Monzo"),
            make_contribution("500", provider="Chip"),
            make_contribution("250", provider="Monzo"),
            make_contribution("3000", isa_type=ISAType.STOCKS_AND_SHARES, provider="Vanguard"),
        ]
        groups = group_by_type_and_provider(contributions)

        cash = groups[ISAType.CASH]
        assert cash.providers == {"Monzo": Decimal("1250"), "Chip": Decimal("500")}
        assert cash.total == Decimal("1750")
        assert groups[ISAType.STOCKS_AND_SHARES].total == Decimal("3000")

    def test_provider_order_is_insertion_order(self, make_contribution):
        """Test providers appear in the order first seen."""
        contributions = [
            make_contribution(provider="Zopa"),
            make_contribution(provider="Atom"),
            make_contribution(provider="Monzo"),
        ]
        providers = group_by_type_and_provider(contributions)[ISAType.CASH].providers
        assert list(providers) == ["Zopa", "Atom", "Monzo"]

    def test_excludes_withdrawn_and_deleted(self, make_contribution):
        """Test soft-flagged entries are ignored."""
        contributions = [
            make_contribution("1000"),
            make_contribution("500", withdrawn=True),
            make_contribution("4000", isa_type=ISAType.LIFETIME, deleted=True),
        ]
        groups = group_by_type_and_provider(contributions)
        assert groups[ISAType.CASH].total == Decimal("1000")
        assert ISAType.LIFETIME not in groups

    def test_empty(self):
        """Test no contributions means no groups."""
        assert group_by_type_and_provider([]) == {}


class TestTotals:
    """Tests for totals and filters."""

    def test_total_contributed_ignores_ineligible(self, make_contribution):
        """Test totals only count eligible entries."""
        contributions = [
            make_contribution("1000.50"),
            make_contribution("99.50"),
            make_contribution("5000", withdrawn=True),
        ]
        assert total_contributed(contributions) == Decimal("1100.00")
        assert len(eligible(contributions)) == 2

    def test_total_of_nothing_is_zero(self):
        """Test the empty sum is a Decimal zero."""
        assert total_contributed([]) == Decimal("0")

    def test_filter_by_tax_year(self, make_contribution, tax_year_2024):
        """Test filtering keeps only entries within the year."""
        inside = make_contribution(when=datetime(2025, 4, 5, 23, 0))
        outside = make_contribution(when=datetime(2025, 4, 6, 0, 0))
        assert filter_by_tax_year([inside, outside], tax_year_2024) == [inside]

    def test_by_tax_year(self, make_contribution):
        """Test totals keyed by long label."""
        contributions = [
            make_contribution("1000", when=datetime(2023, 5, 1)),
            make_contribution("2000", when=datetime(2024, 3, 1)),
            make_contribution("3000", when=datetime(2024, 5, 1)),
        ]
        assert by_tax_year(contributions) == {
            "2023/24": Decimal("3000"),
            "2024/25": Decimal("3000"),
        }

    def test_providers_for(self, make_contribution):
        """Test distinct providers per type."""
        contributions = [
            make_contribution(provider="Monzo"),
            make_contribution(provider="Monzo"),
            make_contribution("1000", isa_type=ISAType.LIFETIME, provider="Moneybox"),
        ]
        assert providers_for(contributions, ISAType.CASH) == ["Monzo"]
        assert lifetime_providers(contributions) == ["Moneybox"]


class TestFlexibleState:
    """Tests for build_flexible_state."""

    def test_aggregates_one_year(self, make_contribution, tax_year_2024):
        """Test only the target year's eligible entries count."""
        contributions = [
            make_contribution("18000", when=datetime(2024, 6, 1)),
            make_contribution("5000", when=datetime(2023, 6, 1)),
            make_contribution("700", when=datetime(2024, 7, 1), withdrawn=True),
        ]
        state = build_flexible_state(
            contributions, tax_year_2024, withdrawals_this_year=Decimal("2000"),
        )
        assert state.contributions_this_year == Decimal("18000")
        assert state.withdrawals_this_year == Decimal("2000")
        assert state.annual_allowance == Decimal("20000")

    def test_counts_final_instant_of_year(self, make_contribution, tax_year_2024):
        """Test an entry in the last sub-millisecond of 5 April still uses up allowance."""
        late = make_contribution("20000", when=datetime(2025, 4, 5, 23, 59, 59, 999500))
        state = build_flexible_state([late], tax_year_2024)
        assert state.contributions_this_year == Decimal("20000")
        assert not evaluate_deposit(state, Decimal("20000")).allowed


class TestAllowanceBreaches:
    """Tests for find_allowance_breaches."""

    def test_reports_each_year_over_allowance(self, make_contribution):
        """Test backdated excess is reported, not corrected."""
        contributions = [
            make_contribution("15000", when=datetime(2023, 5, 1)),
            make_contribution("6000", when=datetime(2024, 1, 1)),
            make_contribution("20000", when=datetime(2024, 5, 1)),
        ]
        breaches = find_allowance_breaches(contributions, Decimal("20000"))
        assert len(breaches) == 1
        assert breaches[0].tax_year_label == "2023/24"
        assert breaches[0].excess == Decimal("1000")

    def test_exactly_at_allowance_is_fine(self, make_contribution):
        """Test reaching the allowance is not a breach."""
        contributions = [make_contribution("20000")]
        assert find_allowance_breaches(contributions) == []

    def test_restricted_to_one_year(self, make_contribution, tax_year_2024):
        """Test the optional tax_year filter."""
        contributions = [
            make_contribution("20000", when=datetime(2023, 5, 1)),
            make_contribution("1", when=datetime(2023, 5, 2)),
        ]
        assert find_allowance_breaches(contributions, tax_year=tax_year_2024) == []
