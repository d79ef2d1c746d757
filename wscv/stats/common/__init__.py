"""
wscv.stats.common
=================

Generic, scheme-agnostic statistical utilities.
"""
