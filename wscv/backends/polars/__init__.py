"""
wscv.backends.polars
====================

Polars-based sources and sinks for duplicate measurements.
"""
