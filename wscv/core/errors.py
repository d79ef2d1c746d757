"""
wscv.core.errors
================

Error kinds raised by the estimators.

All of them derive from `ValueError`, so code that already guards numeric
calls with ``except ValueError`` keeps working.

>>> from wscv.core.errors import InvalidInputError
>>> issubclass(InvalidInputError, ValueError)
True
"""


class WscvError(ValueError):
    """Base class for wscv errors."""


class InvalidInputError(WscvError):
    """Inconsistent or out-of-domain paired statistics.

    Raised for length mismatches, fewer than two subjects, zero divisors and
    non-positive logarithm arguments.
    """


class InvalidMethodError(WscvError):
    """Unknown estimator, or a missing/out-of-range confidence level."""


class InvalidResultError(WscvError):
    """An intermediate quantity has no real value (e.g. sqrt of a negative bound)."""
