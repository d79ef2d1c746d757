"""
wscv.stats.schemes
==================

Measurement designs and their estimators.

- `duplicates`: two measurements per subject; within-subject CV by the root
  mean square, logarithmic and whole-dataset methods.
"""
