"""
wscv.reporting.cv
=================

Reporter for recorded within-subject CV estimates.

Reads the ledger once into a polars frame and decodes the JSON payloads of
``WithinSubjectCV`` events into typed columns.

Examples
--------
>>> from wscv.core.ledger import Ledger, create_test_connection
>>> from wscv.api.repeatability import RepeatabilityStudy, CVConfig
>>> L = Ledger(create_test_connection("duckdb"), "lab")
>>> study = RepeatabilityStudy("assay", CVConfig(method="whole_dataset"))
>>> study.setup(L)
>>> study.add_duplicates([10, 15, 25, 30, 22, 14], [11, 14.5, 22.5, 31, 21, 15])
>>> _ = study.analyze()
>>> table = CVReporter.from_ledger(L).estimates_table()
>>> table.columns
['study_id', 'method', 'n', 'cv_percent', 'lower_ci_percent', 'upper_ci_percent', 'confidence_level']
>>> table["lower_ci_percent"].to_list()
[None]
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

import polars as pl

if TYPE_CHECKING:
    from wscv.core.ledger import Ledger


_ESTIMATE_DTYPE = pl.Struct(
    {
        "method": pl.Utf8,
        "cv_percent": pl.Float64,
        "lower_ci_percent": pl.Float64,
        "upper_ci_percent": pl.Float64,
        "confidence_level": pl.Float64,
        "n": pl.Int64,
        "critical_value": pl.Float64,
    }
)

_ESTIMATE_COLUMNS = [
    "study_id",
    "method",
    "n",
    "cv_percent",
    "lower_ci_percent",
    "upper_ci_percent",
    "confidence_level",
]


@dataclass
class CVReporter:
    """Within-subject CV estimates view over a ledger frame."""

    df: pl.DataFrame

    @classmethod
    def from_ledger(cls, ledger: "Ledger") -> "CVReporter":
        """Snapshot the ledger's rows, in write order."""
        return cls(pl.from_pandas(ledger.table.order_by("seq").execute()))

    def estimates_table(self) -> pl.DataFrame:
        """One row per recorded estimate, oldest first."""
        return (
            self.df.filter(
                (pl.col("namespace") == "stats")
                & (pl.col("payload_type") == "WithinSubjectCV")
            )
            .sort("seq")
            .with_columns(pl.col("payload").str.json_decode(_ESTIMATE_DTYPE))
            .unnest("payload")
            .select(_ESTIMATE_COLUMNS)
        )

    def latest_by_method(self) -> pl.DataFrame:
        """Most recent estimate per study and method."""
        return (
            self.estimates_table()
            .group_by(["study_id", "method"], maintain_order=True)
            .agg(pl.all().last())
        )
