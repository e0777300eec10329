"""Consistency scoring and saver levels."""

from isa_allowance.scoring.consistency import (
    Bonus,
    ConsistencyScore,
    build_heat_map,
    longest_streak,
    score_contributions,
)
from isa_allowance.scoring.levels import (
    DEFAULT_LEVEL_TABLE,
    DEFAULT_LEVELS,
    Level,
    LevelTable,
    is_level_up,
)

__all__ = [
    "Bonus",
    "ConsistencyScore",
    "DEFAULT_LEVEL_TABLE",
    "DEFAULT_LEVELS",
    "Level",
    "LevelTable",
    "build_heat_map",
    "is_level_up",
    "longest_streak",
    "score_contributions",
]
