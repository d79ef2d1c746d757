"""
wscv.backends
=============

Storage adapters for measurement tables.
"""
