"""
Saver levels.

A level table partitions the score range into contiguous tiers. Each tier
covers [min_score, max_score) except the last, which is closed at 100.
"""

from collections.abc import Sequence
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


MAX_SCORE = 100


class Level(BaseModel):
    """One tier of the saver leaderboard."""
    model_config = ConfigDict(frozen=True)

    number: int = Field(..., ge=1)
    name: str
    color: str = Field(..., pattern="^#[0-9A-Fa-f]{6}$")
    reward: str
    min_score: int = Field(..., ge=0, le=MAX_SCORE)
    max_score: int = Field(..., ge=0, le=MAX_SCORE)


DEFAULT_LEVELS: tuple[Level, ...] = (
    Level(number=1, name="Seedling", color="#8E8E93",
          reward="Welcome badge", min_score=0, max_score=15),
    Level(number=2, name="Starter Saver", color="#5B9BD5",
          reward="Starter badge", min_score=15, max_score=30),
    Level(number=3, name="Steady Saver", color="#4A90E2",
          reward="Steady streak badge", min_score=30, max_score=50),
    Level(number=4, name="Smart Saver", color="#FFB800",
          reward="Bronze trophy", min_score=50, max_score=65),
    Level(number=5, name="Super Saver", color="#FFC700",
          reward="Silver trophy", min_score=65, max_score=80),
    Level(number=6, name="ISA Expert", color="#FFD700",
          reward="Gold trophy", min_score=80, max_score=90),
    Level(number=7, name="ISA Master", color="#FFE55C",
          reward="Platinum crown", min_score=90, max_score=100),
)


class LevelTable:
    """
    An ordered, validated set of levels.

    Raises ValueError at construction if the tiers do not cover 0..100
    contiguously with strictly increasing level numbers.
    """

    def __init__(self, levels: Sequence[Level] = DEFAULT_LEVELS):
        ordered = sorted(levels, key=lambda level: level.number)
        self._validate(ordered)
        self._levels = tuple(ordered)

    @staticmethod
    def _validate(levels: list[Level]) -> None:
        if not levels:
            raise ValueError("Level table must contain at least one level")
        if levels[0].min_score != 0:
            raise ValueError("First level must start at score 0")
        if levels[-1].max_score != MAX_SCORE:
            raise ValueError(f"Last level must end at score {MAX_SCORE}")

        for level in levels:
            if level.min_score >= level.max_score:
                raise ValueError(f"Level {level.number} has an empty score range")

        for lower, upper in zip(levels, levels[1:]):
            if lower.number == upper.number:
                raise ValueError(f"Duplicate level number {lower.number}")
            if lower.max_score != upper.min_score:
                raise ValueError(
                    f"Levels {lower.number} and {upper.number} are not contiguous"
                )

    @property
    def levels(self) -> tuple[Level, ...]:
        return self._levels

    @property
    def lowest(self) -> Level:
        return self._levels[0]

    @property
    def terminal(self) -> Level:
        return self._levels[-1]

    def level_for(self, score: int) -> Level:
        if not 0 <= score <= MAX_SCORE:
            raise ValueError(f"Score {score} is outside 0..{MAX_SCORE}")

        for level in self._levels:
            if level.min_score <= score < level.max_score:
                return level
        return self.terminal

    def next_level(self, level: Level) -> Optional[Level]:
        for current, following in zip(self._levels, self._levels[1:]):
            if current.number == level.number:
                return following
        return None

    def progress_to_next(self, score: int) -> float:
        """
        Percentage of the way from the current level's floor to the next
        level's floor. Always 100.0 at the terminal level.
        """
        current = self.level_for(score)
        following = self.next_level(current)
        if following is None:
            return 100.0

        span = following.min_score - current.min_score
        return (score - current.min_score) / span * 100


DEFAULT_LEVEL_TABLE = LevelTable()


def is_level_up(previous_level_number: Optional[int], current: Level) -> bool:
    """
    True when a freshly computed level beats the previously persisted one.

    A user with no persisted level has nothing to level up from.
    """
    if previous_level_number is None:
        return False
    return current.number > previous_level_number
