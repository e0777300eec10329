"""
Consistency Scoring Engine

Derives a 0-100 engagement score from the months of a tax year in which
the user contributed.

Scoring:
- Base score: months covered / 12 * 100, rounded
- Early Bird (+10): first contribution within April-June
- Active Streak (+10): three or more consecutive months
- Frequent Saver (+5): six or more months covered
- Final score is capped at 100

The heat map is indexed by month offset from the start of the tax year
(April = 0 ... March = 11). The 1-5 April tail of a tax year belongs to
its final slot. Streaks never wrap from March back to April.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from isa_allowance.calendar import TaxYear, to_uk_local
from isa_allowance.ledger import eligible, filter_by_tax_year
from isa_allowance.models.contribution import Contribution
from isa_allowance.scoring.levels import (
    DEFAULT_LEVEL_TABLE,
    MAX_SCORE,
    Level,
    LevelTable,
)


MONTHS_IN_TAX_YEAR = 12

EARLY_BIRD_POINTS = 10
EARLY_BIRD_LAST_OFFSET = 2
ACTIVE_STREAK_POINTS = 10
ACTIVE_STREAK_LENGTH = 3
FREQUENT_SAVER_POINTS = 5
FREQUENT_SAVER_MONTHS = 6


class Bonus(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    points: int
    earned: bool
    description: str


class ConsistencyScore(BaseModel):
    """Score, breakdown and level for one tax year."""
    model_config = ConfigDict(frozen=True)

    tax_year_label: str
    score: int = Field(..., ge=0, le=MAX_SCORE)
    base_score: int
    months_covered: int
    heat_map: list[bool]
    bonuses: list[Bonus]
    level: Level
    next_level: Optional[Level] = None
    progress_to_next: float

    @property
    def bonus_points(self) -> int:
        return sum(bonus.points for bonus in self.bonuses if bonus.earned)


def month_offset(contribution: Contribution, tax_year: TaxYear) -> int:
    local = to_uk_local(contribution.date)
    offset = (local.year - tax_year.start_year) * 12 + (local.month - 4)
    return min(offset, MONTHS_IN_TAX_YEAR - 1)


def build_heat_map(
    contributions: Iterable[Contribution],
    tax_year: TaxYear,
) -> list[bool]:
    """Twelve slots, True where an eligible contribution landed that month."""
    heat_map = [False] * MONTHS_IN_TAX_YEAR
    for contribution in eligible(filter_by_tax_year(contributions, tax_year)):
        heat_map[month_offset(contribution, tax_year)] = True
    return heat_map


def longest_streak(heat_map: list[bool]) -> int:
    best = run = 0
    for active in heat_map:
        run = run + 1 if active else 0
        best = max(best, run)
    return best


def base_score(months_covered: int) -> int:
    ratio = Decimal(months_covered * 100) / MONTHS_IN_TAX_YEAR
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def evaluate_bonuses(
    heat_map: list[bool],
    earliest_offset: Optional[int],
) -> list[Bonus]:
    months_covered = sum(heat_map)
    return [
        Bonus(
            name="Early Bird",
            points=EARLY_BIRD_POINTS,
            earned=(
                earliest_offset is not None
                and earliest_offset <= EARLY_BIRD_LAST_OFFSET
            ),
            description="First contribution made between April and June",
        ),
        Bonus(
            name="Active Streak",
            points=ACTIVE_STREAK_POINTS,
            earned=longest_streak(heat_map) >= ACTIVE_STREAK_LENGTH,
            description=f"{ACTIVE_STREAK_LENGTH} or more consecutive months",
        ),
        Bonus(
            name="Frequent Saver",
            points=FREQUENT_SAVER_POINTS,
            earned=months_covered >= FREQUENT_SAVER_MONTHS,
            description=f"Contributed in {FREQUENT_SAVER_MONTHS} or more months",
        ),
    ]


def score_contributions(
    contributions: Iterable[Contribution],
    tax_year: TaxYear,
    levels: LevelTable = DEFAULT_LEVEL_TABLE,
) -> ConsistencyScore:
    """
    Score a tax year's contributions.

    Entries outside `tax_year`, withdrawn or deleted are ignored, so the
    full ledger can be passed in.
    """
    in_year = eligible(filter_by_tax_year(contributions, tax_year))
    heat_map = build_heat_map(in_year, tax_year)
    months_covered = sum(heat_map)

    if not in_year:
        bonuses = evaluate_bonuses(heat_map, earliest_offset=None)
        base = score = 0
    else:
        earliest = min(in_year, key=lambda c: to_uk_local(c.date))
        bonuses = evaluate_bonuses(heat_map, month_offset(earliest, tax_year))
        base = base_score(months_covered)
        earned_points = sum(bonus.points for bonus in bonuses if bonus.earned)
        score = min(MAX_SCORE, base + earned_points)

    level = levels.level_for(score)
    return ConsistencyScore(
        tax_year_label=tax_year.label,
        score=score,
        base_score=base,
        months_covered=months_covered,
        heat_map=heat_map,
        bonuses=bonuses,
        level=level,
        next_level=levels.next_level(level),
        progress_to_next=levels.progress_to_next(score),
    )
