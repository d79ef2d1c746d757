"""
Pytest configuration for wscv tests.

Shared fixtures: the six-subject duplicate example used throughout the
documentation, its paired statistics, and an in-memory duckdb ledger.
"""

import pytest

from wscv.core.ledger import Ledger, create_test_connection
from wscv.stats.schemes.duplicates.core import paired_statistics

# Six subjects measured twice.
T1 = [10, 15, 25, 30, 22, 14]
T2 = [11, 14.5, 22.5, 31, 21, 15]


@pytest.fixture
def duplicates():
    """First and second measurement series."""
    return list(T1), list(T2)


@pytest.fixture
def example_stats():
    """Paired statistics for the six-subject example."""
    return paired_statistics(T1, T2)


@pytest.fixture
def ledger():
    """Fresh in-memory duckdb ledger."""
    return Ledger(create_test_connection("duckdb"), "test")


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "ledger: mark test as touching an ibis backend"
    )
