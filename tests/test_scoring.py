"""Tests for consistency scoring and saver levels."""

import pytest
from datetime import datetime

from isa_allowance.models.contribution import ISAType
from isa_allowance.scoring import (
    DEFAULT_LEVEL_TABLE,
    DEFAULT_LEVELS,
    Level,
    LevelTable,
    build_heat_map,
    is_level_up,
    longest_streak,
    score_contributions,
)


def monthly(make_contribution, months):
    """One contribution on the 10th of each (year, month)."""
    return [make_contribution("100", when=datetime(year, month, 10)) for year, month in months]


class TestConsistencyScore:
    """Tests for score_contributions."""

    def test_first_quarter_only(self, make_contribution, tax_year_2024):
        """Test April to June: base 25, Early Bird and Active Streak, score 45."""
        contributions = monthly(make_contribution, [(2024, 4), (2024, 5), (2024, 6)])
        result = score_contributions(contributions, tax_year_2024)

        assert result.months_covered == 3
        assert result.base_score == 25
        earned = {bonus.name for bonus in result.bonuses if bonus.earned}
        assert earned == {"Early Bird", "Active Streak"}
        assert result.score == 45
        assert result.level.name == "Steady Saver"
        assert result.level.min_score == 30

    def test_empty_year(self, tax_year_2024):
        """Test no contributions scores zero at the lowest level."""
        result = score_contributions([], tax_year_2024)
        assert result.score == 0
        assert result.base_score == 0
        assert result.heat_map == [False] * 12
        assert result.level == DEFAULT_LEVEL_TABLE.lowest
        assert not any(bonus.earned for bonus in result.bonuses)

    def test_full_year_is_capped(self, make_contribution, tax_year_2024):
        """Test twelve months plus bonuses caps at 100 on the terminal level."""
        months = [(2024, m) for m in range(4, 13)] + [(2025, m) for m in range(1, 4)]
        result = score_contributions(monthly(make_contribution, months), tax_year_2024)
        assert result.base_score == 100
        assert result.score == 100
        assert result.level == DEFAULT_LEVEL_TABLE.terminal
        assert result.next_level is None
        assert result.progress_to_next == 100.0

    def test_ignores_other_years_and_withdrawn(self, make_contribution, tax_year_2024):
        """Test the full ledger can be passed in."""
        contributions = [
            make_contribution("100", when=datetime(2023, 5, 1)),
            make_contribution("100", when=datetime(2024, 9, 1), withdrawn=True),
            make_contribution("100", when=datetime(2024, 10, 1)),
        ]
        result = score_contributions(contributions, tax_year_2024)
        assert result.months_covered == 1
        assert result.base_score == 8

    def test_several_entries_in_one_month_count_once(self, make_contribution, tax_year_2024):
        """Test months are distinct."""
        contributions = [
            make_contribution("100", when=datetime(2024, 11, 1)),
            make_contribution("100", when=datetime(2024, 11, 30), isa_type=ISAType.STOCKS_AND_SHARES),
        ]
        assert score_contributions(contributions, tax_year_2024).months_covered == 1

    def test_frequent_saver(self, make_contribution, tax_year_2024):
        """Test six scattered months earn Frequent Saver only."""
        months = [(2024, 8), (2024, 10), (2024, 12), (2025, 1), (2025, 3), (2024, 6)]
        result = score_contributions(monthly(make_contribution, months), tax_year_2024)
        earned = {bonus.name for bonus in result.bonuses if bonus.earned}
        assert earned == {"Early Bird", "Frequent Saver"}
        assert result.score == 50 + 10 + 5

    def test_score_grows_with_months(self, make_contribution, tax_year_2024):
        """Test adding months never lowers the score."""
        months = [(2024, 10), (2024, 12), (2025, 2)]
        previous = 0
        for count in range(1, len(months) + 1):
            result = score_contributions(monthly(make_contribution, months[:count]), tax_year_2024)
            assert result.score >= previous
            previous = result.score


class TestHeatMap:
    """Tests for the heat map and streaks."""

    def test_april_tail_goes_in_last_slot(self, make_contribution, tax_year_2024):
        """Test 1-5 April of the end year lands in slot 11."""
        heat_map = build_heat_map(
            [make_contribution("100", when=datetime(2025, 4, 3))], tax_year_2024,
        )
        assert heat_map[11] is True
        assert heat_map[0] is False

    def test_streak_does_not_wrap(self):
        """Test March and April are not consecutive."""
        heat_map = [True, True] + [False] * 9 + [True]
        assert longest_streak(heat_map) == 2

    def test_longest_streak(self):
        """Test the longest run is found."""
        heat_map = [True, False, True, True, True, True, False] + [False] * 5
        assert longest_streak(heat_map) == 4


class TestLevels:
    """Tests for the level table."""

    def test_every_score_maps_to_exactly_one_level(self):
        """Test the levels partition 0..100."""
        for score in range(0, 101):
            matches = [
                level for level in DEFAULT_LEVELS
                if level.min_score <= score < level.max_score
                or (level == DEFAULT_LEVEL_TABLE.terminal and score == 100)
            ]
            assert len(matches) == 1
            assert DEFAULT_LEVEL_TABLE.level_for(score) == matches[0]

    def test_thresholds(self):
        """Test the tier boundaries."""
        assert [level.min_score for level in DEFAULT_LEVELS] == [0, 15, 30, 50, 65, 80, 90]
        assert DEFAULT_LEVEL_TABLE.level_for(14).number == 1
        assert DEFAULT_LEVEL_TABLE.level_for(15).number == 2
        assert DEFAULT_LEVEL_TABLE.level_for(100).number == 7

    def test_out_of_range_score(self):
        """Test scores outside 0..100 are programming errors."""
        with pytest.raises(ValueError):
            DEFAULT_LEVEL_TABLE.level_for(101)

    def test_progress_to_next(self):
        """Test progress within a level."""
        assert DEFAULT_LEVEL_TABLE.progress_to_next(45) == 75.0
        assert DEFAULT_LEVEL_TABLE.progress_to_next(30) == 0.0

    def test_gap_is_rejected(self):
        """Test a non-contiguous table fails at construction."""
        levels = [
            Level(number=1, name="Low", color="#000000", reward="-", min_score=0, max_score=40),
            Level(number=2, name="High", color="#FFFFFF", reward="-", min_score=50, max_score=100),
        ]
        with pytest.raises(ValueError):
            LevelTable(levels)

    def test_custom_table(self):
        """Test a two-tier table."""
        table = LevelTable([
            Level(number=1, name="Low", color="#000000", reward="-", min_score=0, max_score=50),
            Level(number=2, name="High", color="#FFFFFF", reward="-", min_score=50, max_score=100),
        ])
        assert table.level_for(49).name == "Low"
        assert table.level_for(50).name == "High"

    def test_is_level_up(self):
        """Test level-up compares against the persisted level."""
        steady = DEFAULT_LEVEL_TABLE.level_for(45)
        assert is_level_up(2, steady)
        assert not is_level_up(3, steady)
        assert not is_level_up(4, steady)
        assert not is_level_up(None, steady)
