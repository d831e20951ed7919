# /quizflow/services/grading/level_calculator.py

import math
from enum import Enum
from typing import Dict


class Level(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# Lower bounds (inclusive) of each tier, as a percentage of the maximum score.
LEVEL_BOUNDARIES: Dict[Level, float] = {
    Level.ADVANCED: 80.0,
    Level.INTERMEDIATE: 50.0,
    Level.BEGINNER: 0.0,
}

_DISPLAY_NAMES = {
    Level.BEGINNER: "Beginner",
    Level.INTERMEDIATE: "Intermediate",
    Level.ADVANCED: "Advanced",
}


def calculate_level(total_score: float, max_score: float) -> Level:
    """
    Maps a score to a three-tier level. A zero maximum is defined as beginner.
    Comparison is on the unrounded percentage.
    """
    if not max_score:
        return Level.BEGINNER

    percentage = (total_score / max_score) * 100

    if percentage >= LEVEL_BOUNDARIES[Level.ADVANCED]:
        return Level.ADVANCED
    if percentage >= LEVEL_BOUNDARIES[Level.INTERMEDIATE]:
        return Level.INTERMEDIATE
    return Level.BEGINNER


def calculate_percentage(total_score: float, max_score: float) -> int:
    """Whole-number percentage for display; 0 when there is nothing to score."""
    if not max_score:
        return 0
    return int(math.floor((total_score / max_score) * 100 + 0.5))


def get_level_display_name(level) -> str:
    return _DISPLAY_NAMES[Level(level)]
