"""
wscv.core
=========

Infrastructure shared by every scheme: typed names, error kinds, the
ibis-backed ledger and the component base classes that read from and write
to it.
"""
