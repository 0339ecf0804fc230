"""Level, XP progress and LifeScore computation.

Pure functions, no I/O. Levels cost a flat 100 XP each and LifeScore is
bounded to [0, 100], so the LifeScore value is also its percentage.
"""

from __future__ import annotations

import math
import sys

XP_PER_LEVEL = 100
MAX_LIFESCORE = 100
# Saturation point for unbounded XP and level inputs
MAX_XP = sys.maxsize

LIFESCORE_STATUS_THRESHOLDS: list[tuple[int, str]] = [
    (80, "excellent"),
    (60, "high"),
    (40, "medium"),
]


def _as_float(value: float | int | None) -> float:
    """float(value); unparseable input becomes NaN, out-of-range input becomes +/-inf."""
    if value is None:
        return math.nan
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf
    except (TypeError, ValueError):
        return math.nan


def _non_negative_int(value: float | int | None) -> int:
    """Coerce to an integer in [0, MAX_XP]; None and NaN become 0."""
    number = _as_float(value)
    if math.isnan(number) or number <= 0:
        return 0
    if number >= MAX_XP:
        return MAX_XP
    return math.floor(number)


def level_from_xp(xp: float | int | None) -> int:
    """Level 1 at 0 XP, +1 per 100 XP."""
    return _non_negative_int(xp) // XP_PER_LEVEL + 1


def xp_for_level(level: float | int | None) -> int:
    """Cumulative XP at which the level after ``level`` is reached."""
    return _non_negative_int(level) * XP_PER_LEVEL


def xp_progress(xp: float | int | None, level: float | int | None) -> dict[str, int]:
    """Progress through the current level.

    ``required`` is always XP_PER_LEVEL.
    """
    level_int = max(1, _non_negative_int(level))
    current = max(0, _non_negative_int(xp) - (level_int - 1) * XP_PER_LEVEL)
    return {
        "current": current,
        "required": XP_PER_LEVEL,
        "percentage": round(current / XP_PER_LEVEL * 100),
    }


def clamp_lifescore(value: float | int | None) -> int:
    """Round and clamp to [0, MAX_LIFESCORE]. None and NaN clamp to 0, infinities saturate."""
    number = _as_float(value)
    if math.isnan(number):
        return 0
    number = max(0.0, min(float(MAX_LIFESCORE), number))
    # Python's round() is banker's rounding; LifeScore rounds half up.
    return math.floor(number + 0.5)


def lifescore_percentage(value: float | int | None) -> int:
    return round(clamp_lifescore(value) / MAX_LIFESCORE * 100)


def lifescore_status(value: float | int | None) -> str:
    """Bucket a LifeScore into excellent / high / medium / low."""
    pct = lifescore_percentage(value)
    for threshold, status in LIFESCORE_STATUS_THRESHOLDS:
        if pct >= threshold:
            return status
    return "low"
