"""
wscv: within-subject coefficient of variation from duplicate measurements.

Repeatability studies measure every subject twice and ask how much the two
readings disagree relative to their size. wscv answers that with Martin
Bland's three estimators (root mean square, logarithmic and whole dataset)
and, where one exists, a Student-t confidence interval for the CV.

The estimators are pure functions over a typed summary of the duplicates.
Around them sits the same event-sourced plumbing used for sequential
procedures: duplicates and estimates can be appended to a typed ledger, so a
study that grows batch by batch keeps a full audit trail of every estimate
it reported.

Example
-------
>>> import wscv
>>> assert hasattr(wscv, "core")
>>> assert hasattr(wscv, "stats")
>>> from wscv.api.repeatability import within_subject_cv
>>> res = within_subject_cv([10, 15, 25, 30, 22, 14], [11, 14.5, 22.5, 31, 21, 15],
...                         method="whole_dataset")
>>> round(res.point_estimate_percent, 2)
4.86
"""

from wscv import core, stats
from wscv.__version__ import __version__

__all__ = ["core", "stats", "__version__"]
