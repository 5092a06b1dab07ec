"""
Service Assurance Tracker
RAG rating scales and their rank tables.

Scales:
    - ProjectRating: 5-RAG + TBC, used by projects and profession assessments.
    - StandardRating: 3-RAG + TBC, used by aggregated service standard summaries.

All ordering (worst-wins aggregation, scoring, trend ranking) goes through the
explicit tables below instead of string comparison.
"""

from __future__ import annotations

from enum import Enum


class ProjectRating(str, Enum):
    RED = "RED"
    AMBER_RED = "AMBER_RED"
    AMBER = "AMBER"
    GREEN_AMBER = "GREEN_AMBER"
    GREEN = "GREEN"
    TBC = "TBC"


class StandardRating(str, Enum):
    RED = "RED"
    AMBER = "AMBER"
    GREEN = "GREEN"
    TBC = "TBC"


# Non-rating markers that appear in summaries or history
PENDING = "PENDING"
EXCLUDED = "EXCLUDED"
NOT_UPDATED = "NOT_UPDATED"
UNKNOWN = "UNKNOWN"

# 5-RAG intermediate values collapse onto AMBER
_FIVE_TO_THREE = {
    ProjectRating.AMBER_RED.value: StandardRating.AMBER.value,
    ProjectRating.GREEN_AMBER.value: StandardRating.AMBER.value,
}

# Worst first
AGGREGATION_PRIORITY: tuple[str, ...] = (
    StandardRating.RED.value,
    StandardRating.AMBER.value,
    StandardRating.GREEN.value,
    StandardRating.TBC.value,
)

# Project-level score per aggregated standard status (EXCLUDED is never summed)
STANDARD_SCORES: dict[str, int] = {
    StandardRating.GREEN.value: 3,
    StandardRating.AMBER.value: 2,
    StandardRating.RED.value: 1,
    PENDING: 0,
    StandardRating.TBC.value: 0,
}
MAX_STANDARD_SCORE = STANDARD_SCORES[StandardRating.GREEN.value]

NOT_COMPLETED_STATUSES = frozenset({PENDING, StandardRating.TBC.value, EXCLUDED, NOT_UPDATED})

# Trend ranking used by the worsening detector (higher is better)
TREND_RANKS: dict[str, int] = {
    StandardRating.GREEN.value: 3,
    StandardRating.AMBER.value: 2,
    StandardRating.RED.value: 1,
    PENDING: 0,
}


def _normalise(value) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    return str(value).strip().upper()


def parse_project_rating(value) -> ProjectRating | None:
    """Parse a 6-value rating case-insensitively; ``None`` when unknown."""
    try:
        return ProjectRating(_normalise(value))
    except ValueError:
        return None


def parse_standard_rating(value) -> StandardRating | None:
    """Parse a 4-value rating case-insensitively; ``None`` when unknown."""
    try:
        return StandardRating(_normalise(value))
    except ValueError:
        return None


def to_standard_rating(value) -> str:
    """Map a 6-value status onto the 4-value scale (unknown values pass through)."""
    normalised = _normalise(value)
    return _FIVE_TO_THREE.get(normalised, normalised)


def trend_rank(value) -> int | None:
    """Rank for the worsening detector, or ``None`` if the value is unrankable."""
    normalised = _normalise(value)
    if not normalised:
        return None
    return TREND_RANKS.get(normalised)


def valid_project_ratings() -> str:
    return ", ".join(r.value for r in ProjectRating)
