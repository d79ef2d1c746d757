"""
wscv.reporting
==============

Tabular views over a study ledger.
"""
