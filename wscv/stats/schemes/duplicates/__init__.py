"""
Duplicate-measurement studies: every subject measured exactly twice.

**Module Organization:**

- `core`: `PairedSubjectStatistics`, the paired summary, batches and ledger
  ingestion
- `estimators`: root mean square, logarithmic and whole-dataset CV
- `statistics`: ledger component recording estimates

Example Usage
-------------
>>> from wscv.stats.schemes.duplicates import paired_statistics, estimate, CVMethod
>>> stats = paired_statistics([10, 15, 25, 30, 22, 14], [11, 14.5, 22.5, 31, 21, 15])
>>> res = estimate(stats, CVMethod.LOGARITHMIC, confidence_level=0.95)
>>> round(res.point_estimate_percent, 2)
5.07
"""

from wscv.stats.schemes.duplicates.core import (
    DuplicateBatch,
    DuplicateObservation,
    PairedSubjectStatistics,
    paired_statistics,
    reduce_duplicates,
)
from wscv.stats.schemes.duplicates.estimators import (
    CVEstimator,
    CVMethod,
    CVResult,
    estimate,
    logarithmic_cv,
    root_mean_cv,
    whole_dataset_cv,
)
from wscv.stats.schemes.duplicates.statistics import (
    WithinSubjectCVStatistic,
    latest_estimate,
)

__all__ = [
    "CVEstimator",
    "CVMethod",
    "CVResult",
    "DuplicateBatch",
    "DuplicateObservation",
    "PairedSubjectStatistics",
    "WithinSubjectCVStatistic",
    "estimate",
    "latest_estimate",
    "logarithmic_cv",
    "paired_statistics",
    "reduce_duplicates",
    "root_mean_cv",
    "whole_dataset_cv",
]
