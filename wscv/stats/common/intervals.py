"""
wscv.stats.common.intervals
===========================

Two-sided Student-t intervals.

Small repeatability studies rarely have the hundred subjects that justify a
normal critical value of 1.96, so every interval in wscv is built from the
t distribution with ``n - 1`` degrees of freedom:

    prob   = 1 - (1 - level) / 2
    t_crit = t.ppf(prob, df)
    CI     = [center - t_crit * se, center + t_crit * se]

Examples
--------
>>> round(two_sided_probability(0.90), 10)
0.95
>>> round(t_critical_value(0.90, df=5), 4)
2.015
>>> symmetric_interval(1.0, 0.5, 2.0)
(0.0, 2.0)
"""

from __future__ import annotations
import math
from typing import Tuple

from scipy.stats import t as student_t

from wscv.core.errors import InvalidInputError, InvalidMethodError


def validate_confidence_level(confidence_level: float) -> float:
    """Return the level as a float, or raise if it is outside (0, 1)."""
    try:
        level = float(confidence_level)
    except (TypeError, ValueError) as exc:
        raise InvalidMethodError(
            f"confidence_level must be a number in (0, 1), got {confidence_level!r}"
        ) from exc
    if not (0.0 < level < 1.0):
        raise InvalidMethodError(
            f"confidence_level must be in (0, 1), got {confidence_level}"
        )
    return level


def two_sided_probability(confidence_level: float) -> float:
    """Upper-tail probability for a two-sided interval at `confidence_level`."""
    level = validate_confidence_level(confidence_level)
    return 1.0 - (1.0 - level) / 2.0


def t_critical_value(confidence_level: float, df: int) -> float:
    """
    Student-t critical value for a two-sided interval.

    Args:
        confidence_level: Coverage of the interval, in (0, 1)
        df: Degrees of freedom (at least 1)

    Returns:
        The ``1 - (1 - confidence_level) / 2`` quantile of t(df)

    Examples:
        >>> round(t_critical_value(0.90, df=19), 6)
        1.729133
    """
    if df < 1:
        raise InvalidInputError(f"degrees of freedom must be >= 1, got {df}")
    prob = two_sided_probability(confidence_level)
    crit = float(student_t.ppf(prob, df))
    if not math.isfinite(crit):
        raise InvalidMethodError(
            f"t quantile is undefined at confidence_level={confidence_level}"
        )
    return crit


def symmetric_interval(
    center: float, se: float, critical_value: float
) -> Tuple[float, float]:
    """Return ``(center - c*se, center + c*se)``."""
    half_width = critical_value * se
    return center - half_width, center + half_width
