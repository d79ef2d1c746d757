"""
wscv.stats.schemes.duplicates.estimators
========================================

Within-subject coefficient of variation from duplicate measurements.

Three estimators are available, following Bland's notes on measuring the
within-subject CV (https://www-users.york.ac.uk/~mb55/meas/cv.htm). Results
agree with MedCalc's "coefficient of variation from duplicate measurements".

**Root mean square** (`CVMethod.ROOT_MEAN`)
    s2_i = d_i^2 / 2,  r_i = s2_i / m_i^2,  M = mean(r)
    CV   = sqrt(M)
    SE   = sd(r) / sqrt(n)
    CI   = sqrt(M -/+ t * SE)

**Logarithmic** (`CVMethod.LOGARITHMIC`)
    s_i = (ln x_i - ln y_i)^2 / 2,  sw = sqrt(mean(s))
    CV  = exp(sw) - 1
    SE  = sw / sqrt(2 n (m - 1)),  m = 2
    CI  = exp(sw -/+ t * SE) - 1

**Whole dataset** (`CVMethod.WHOLE_DATASET`, not recommended)
    sd = sqrt(sum(d^2) / 2n)
    CV = sd / mean(m)
    no confidence interval

Here ``t`` is the ``1 - (1 - level)/2`` quantile of Student's t with
``n - 1`` degrees of freedom, and all CVs are reported as percentages.

Examples
--------
>>> from wscv.stats.schemes.duplicates.core import paired_statistics
>>> stats = paired_statistics([10, 15, 25, 30, 22, 14], [11, 14.5, 22.5, 31, 21, 15])
>>> res = estimate(stats, CVMethod.ROOT_MEAN, confidence_level=0.90)
>>> round(res.point_estimate_percent, 2)
4.94
>>> res.lower_ci_percent < res.point_estimate_percent < res.upper_ci_percent
True
>>> round(res.critical_value, 3)
2.015
>>> estimate(stats, "whole_dataset").has_interval
False
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

import numpy as np

from wscv.core.errors import (
    InvalidInputError,
    InvalidMethodError,
    InvalidResultError,
)
from wscv.stats.common.intervals import (
    symmetric_interval,
    t_critical_value,
    validate_confidence_level,
)
from wscv.stats.schemes.duplicates.core import PairedSubjectStatistics

logger = logging.getLogger(__name__)

# Observations per subject.
DUPLICATES = 2


class CVMethod(str, Enum):
    """Within-subject CV estimators."""

    ROOT_MEAN = "root_mean"
    LOGARITHMIC = "logarithmic"
    WHOLE_DATASET = "whole_dataset"

    def __str__(self) -> str:
        return self.value

    @property
    def requires_confidence_level(self) -> bool:
        return self is not CVMethod.WHOLE_DATASET

    @classmethod
    def parse(cls, value: Union["CVMethod", str]) -> "CVMethod":
        """
        Accept a member or its string value.

        >>> CVMethod.parse("root_mean")
        <CVMethod.ROOT_MEAN: 'root_mean'>
        >>> CVMethod.parse("anova")
        Traceback (most recent call last):
        ...
        wscv.core.errors.InvalidMethodError: Unknown method 'anova'; expected one of root_mean, logarithmic, whole_dataset
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            options = ", ".join(m.value for m in cls)
            raise InvalidMethodError(
                f"Unknown method {value!r}; expected one of {options}"
            ) from None


@dataclass(frozen=True)
class CVResult:
    """
    Within-subject CV estimate.

    Attributes:
        method: Estimator that produced the result
        point_estimate_percent: CV as a percentage
        lower_ci_percent: Lower confidence limit (None for whole dataset)
        upper_ci_percent: Upper confidence limit (None for whole dataset)
        confidence_level: Coverage of the interval, when there is one
        subject_count: Number of subjects the estimate is based on
        critical_value: Student-t quantile used for the interval
    """

    method: CVMethod
    point_estimate_percent: float
    lower_ci_percent: Optional[float] = None
    upper_ci_percent: Optional[float] = None
    confidence_level: Optional[float] = None
    subject_count: int = 0
    critical_value: Optional[float] = None

    @property
    def has_interval(self) -> bool:
        return self.lower_ci_percent is not None and self.upper_ci_percent is not None

    def to_payload(self) -> Dict[str, Any]:
        """Plain-dict form, as recorded in the ledger."""
        return {
            "method": self.method.value,
            "cv_percent": self.point_estimate_percent,
            "lower_ci_percent": self.lower_ci_percent,
            "upper_ci_percent": self.upper_ci_percent,
            "confidence_level": self.confidence_level,
            "n": self.subject_count,
            "critical_value": self.critical_value,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "CVResult":
        return cls(
            method=CVMethod.parse(payload["method"]),
            point_estimate_percent=float(payload["cv_percent"]),
            lower_ci_percent=payload.get("lower_ci_percent"),
            upper_ci_percent=payload.get("upper_ci_percent"),
            confidence_level=payload.get("confidence_level"),
            subject_count=int(payload.get("n", 0)),
            critical_value=payload.get("critical_value"),
        )


def root_mean_cv(
    stats: PairedSubjectStatistics, confidence_level: float
) -> CVResult:
    """
    Root mean square estimate of the within-subject CV.

    The interval is the usual t interval for the mean squared CV, square
    rooted. Squared CVs are far from normal, so the interval is only
    approximate.

    Raises:
        InvalidInputError: if any subject mean is zero
        InvalidResultError: if the lower limit for the squared CV is negative
    """
    level = validate_confidence_level(confidence_level)
    n = stats.subject_count
    means = np.asarray(stats.per_subject_mean, dtype=float)
    diffs = np.asarray(stats.per_subject_difference, dtype=float)

    if np.any(means == 0.0):
        raise InvalidInputError(
            "root_mean method divides by each subject mean; found a zero mean"
        )

    s2 = diffs**2 / 2.0
    s2m2 = s2 / means**2
    mean_s2m2 = float(np.mean(s2m2))

    se = float(np.std(s2m2, ddof=1)) / math.sqrt(n)
    crit = t_critical_value(level, df=n - 1)
    low_sq, high_sq = symmetric_interval(mean_s2m2, se, crit)
    logger.debug(
        "root_mean: n=%d mean_s2m2=%.6g se=%.6g t=%.6g", n, mean_s2m2, se, crit
    )

    if low_sq < 0.0:
        raise InvalidResultError(
            f"lower confidence limit for the squared CV is negative ({low_sq:.6g}); "
            f"no {level:.0%} interval exists for n={n}"
        )

    return CVResult(
        method=CVMethod.ROOT_MEAN,
        point_estimate_percent=math.sqrt(mean_s2m2) * 100.0,
        lower_ci_percent=math.sqrt(low_sq) * 100.0,
        upper_ci_percent=math.sqrt(high_sq) * 100.0,
        confidence_level=level,
        subject_count=n,
        critical_value=crit,
    )


def logarithmic_cv(
    stats: PairedSubjectStatistics, confidence_level: float
) -> CVResult:
    """
    Logarithmic estimate of the within-subject CV.

    Works on the raw pairs rather than the differences, since the log
    difference cannot be recovered from ``first - second``.

    Raises:
        InvalidInputError: if raw pairs are missing or not strictly positive
    """
    level = validate_confidence_level(confidence_level)
    n = stats.subject_count
    if not stats.has_raw_pairs:
        raise InvalidInputError("logarithmic method needs raw_pair_first/second")

    x = np.asarray(stats.raw_pair_first, dtype=float)
    y = np.asarray(stats.raw_pair_second, dtype=float)
    if np.any(x <= 0.0) or np.any(y <= 0.0):
        raise InvalidInputError(
            "logarithmic method needs strictly positive measurements"
        )

    lx, ly = np.log(x), np.log(y)
    s21 = (lx - ly) ** 2 / 2.0
    sw = math.sqrt(float(np.mean(s21)))

    se = sw / math.sqrt(2 * n * (DUPLICATES - 1))
    crit = t_critical_value(level, df=n - 1)
    low_pre, high_pre = symmetric_interval(sw, se, crit)
    logger.debug("logarithmic: n=%d sw=%.6g se=%.6g t=%.6g", n, sw, se, crit)

    return CVResult(
        method=CVMethod.LOGARITHMIC,
        point_estimate_percent=math.expm1(sw) * 100.0,
        lower_ci_percent=math.expm1(low_pre) * 100.0,
        upper_ci_percent=math.expm1(high_pre) * 100.0,
        confidence_level=level,
        subject_count=n,
        critical_value=crit,
    )


def whole_dataset_cv(stats: PairedSubjectStatistics) -> CVResult:
    """
    Whole-dataset estimate: pooled SD over the grand mean.

    Kept for compatibility with older analyses. It ignores how the CV varies
    between subjects, and no confidence interval follows from it.

    Raises:
        InvalidInputError: if the mean of the subject means is zero
    """
    logger.warning(
        "whole_dataset CV is not recommended; prefer root_mean or logarithmic"
    )
    n = stats.subject_count
    diffs = np.asarray(stats.per_subject_difference, dtype=float)
    grand_mean = float(np.mean(stats.per_subject_mean))
    if grand_mean == 0.0:
        raise InvalidInputError(
            "whole_dataset method divides by the mean of subject means, which is zero"
        )

    sd = math.sqrt(float(np.sum(diffs**2)) / (2 * n))
    return CVResult(
        method=CVMethod.WHOLE_DATASET,
        point_estimate_percent=sd / abs(grand_mean) * 100.0,
        subject_count=n,
    )


_ESTIMATORS: Dict[CVMethod, Callable[..., CVResult]] = {
    CVMethod.ROOT_MEAN: root_mean_cv,
    CVMethod.LOGARITHMIC: logarithmic_cv,
}


def estimate(
    stats: PairedSubjectStatistics,
    method: Union[CVMethod, str],
    confidence_level: Optional[float] = None,
) -> CVResult:
    """
    Estimate the within-subject CV with the chosen method.

    Args:
        stats: Paired statistics for the subjects
        method: One of `CVMethod` or its string value
        confidence_level: Interval coverage in (0, 1); required for root_mean
            and logarithmic, ignored for whole_dataset

    Returns:
        CVResult with CI limits for root_mean and logarithmic only

    Raises:
        InvalidMethodError: unknown method, or a missing/out-of-range level
        InvalidInputError: statistics outside the method's domain
        InvalidResultError: the interval is mathematically undefined
    """
    method = CVMethod.parse(method)
    if not isinstance(stats, PairedSubjectStatistics):
        raise InvalidInputError(
            f"expected PairedSubjectStatistics, got {type(stats).__name__}"
        )

    if method is CVMethod.WHOLE_DATASET:
        return whole_dataset_cv(stats)

    if confidence_level is None:
        raise InvalidMethodError(f"{method.value} method requires a confidence_level")
    return _ESTIMATORS[method](stats, confidence_level)


@dataclass(frozen=True)
class CVEstimator:
    """
    An estimator bound to a method and confidence level.

    The configuration is checked once, at construction, so a misconfigured
    estimator fails before it sees any data.

    >>> from wscv.stats.schemes.duplicates.core import paired_statistics
    >>> est = CVEstimator(CVMethod.LOGARITHMIC, confidence_level=0.95)
    >>> est(paired_statistics([1.0, 2.0], [1.0, 2.0])).point_estimate_percent
    0.0
    """

    method: CVMethod = CVMethod.ROOT_MEAN
    confidence_level: Optional[float] = 0.95

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", CVMethod.parse(self.method))
        if self.method.requires_confidence_level:
            if self.confidence_level is None:
                raise InvalidMethodError(
                    f"{self.method.value} method requires a confidence_level"
                )
            validate_confidence_level(self.confidence_level)

    def __call__(self, stats: PairedSubjectStatistics) -> CVResult:
        return estimate(stats, self.method, self.confidence_level)
