"""
wscv.api - User-Friendly Facade
===============================

Entry points organised by what a lab wants to know, rather than by how the
estimators are built.

Examples
--------
>>> from wscv.api.repeatability import within_subject_cv
>>> res = within_subject_cv([10, 15, 25, 30, 22, 14], [11, 14.5, 22.5, 31, 21, 15],
...                         method="logarithmic", confidence_level=0.95)
>>> res.has_interval
True

Unified Interface
-----------------
- `within_subject_cv()`: one estimate from two measurement series
- `compare_methods()`: every estimator side by side
- `RepeatabilityStudy`: ledger-backed study that grows batch by batch
- `CVConfig`: estimator configuration
"""

from wscv.api.repeatability import (
    CVConfig,
    RepeatabilityStudy,
    compare_methods,
    within_subject_cv,
)

__all__ = ["CVConfig", "RepeatabilityStudy", "compare_methods", "within_subject_cv"]
