"""
Statistical methods for repeatability studies.

The layout separates generic machinery from scheme-specific estimators:

1. **Common** (wscv.stats.common):
   Scheme-independent building blocks, such as Student-t critical values and
   symmetric intervals around an estimate.

2. **Schemes** (wscv.stats.schemes):
   Estimators for a particular measurement design. The only design so far is
   duplicates: every subject measured exactly twice.

Example:
--------
>>> from wscv.stats.common.intervals import t_critical_value
>>> round(t_critical_value(0.95, df=19), 6)
2.093024

>>> from wscv.stats.schemes.duplicates.estimators import CVMethod
>>> CVMethod.parse("logarithmic") is CVMethod.LOGARITHMIC
True
"""
