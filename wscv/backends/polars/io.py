"""
wscv.backends.polars.io
=======================

Pluggable persistence for measurement tables via **sinks/sources**.

- Parquet file, CSV file
- Database (ADBC) query source

plus helpers that turn a frame into the two measurement series the
estimators expect. Nothing here knows about ledgers.

Doctest (smoke):
>>> import polars as pl
>>> df = pl.DataFrame({"subject": ["a", "b"], "first": [10.0, 15.0], "second": [11.0, 14.5]})
>>> duplicates_from_frame(df)
([10.0, 15.0], [11.0, 14.5], ['a', 'b'])
>>> long = pl.DataFrame({"subject": ["a", "a", "b", "b"], "replicate": [1, 2, 1, 2],
...                      "value": [10.0, 11.0, 15.0, 14.5]})
>>> duplicates_from_long(long)
([10.0, 15.0], [11.0, 14.5], ['a', 'b'])
>>> CsvFileSink("_tmp.csv").write(df)  # doctest: +SKIP
>>> _ = CsvFileSource("_tmp.csv").read()  # doctest: +SKIP
"""

from __future__ import annotations
from typing import List, Optional, Protocol, Tuple

import polars as pl

from wscv.core.errors import InvalidInputError


class MeasurementSink(Protocol):
    """A write-only sink: DataFrame -> storage."""
    def write(self, df: pl.DataFrame) -> None: ...


class MeasurementSource(Protocol):
    """A read-only source: storage -> DataFrame."""
    def read(self) -> pl.DataFrame: ...


class ParquetFileSink:
    def __init__(self, path: str) -> None:
        self.path = path
    def write(self, df: pl.DataFrame) -> None:
        df.write_parquet(self.path)


class CsvFileSink:
    def __init__(self, path: str) -> None:
        self.path = path
    def write(self, df: pl.DataFrame) -> None:
        df.write_csv(self.path)


class ParquetFileSource:
    def __init__(self, path: str) -> None:
        self.path = path
    def read(self) -> pl.DataFrame:
        return pl.read_parquet(self.path)


class CsvFileSource:
    def __init__(self, path: str) -> None:
        self.path = path
    def read(self) -> pl.DataFrame:
        return pl.read_csv(self.path)


class DatabaseQuerySource:
    """ADBC-backed query source (Postgres, SQLite, ...). Requires a driver."""
    def __init__(self, conn: str, query: str) -> None:
        self.conn = conn
        self.query = query
    def read(self) -> pl.DataFrame:
        return pl.read_database_uri(self.query, uri=self.conn, engine="adbc")


def _require_columns(df: pl.DataFrame, *names: str) -> None:
    missing = [n for n in names if n not in df.columns]
    if missing:
        raise InvalidInputError(f"missing column(s): {', '.join(missing)}")


def duplicates_from_frame(
    df: pl.DataFrame,
    first: str = "first",
    second: str = "second",
    subject: Optional[str] = "subject",
) -> Tuple[List[float], List[float], Optional[List[str]]]:
    """
    Extract the two measurement series from a wide frame (one row per subject).

    The subject column is optional; when it is absent, ids are None.
    """
    _require_columns(df, first, second)
    xs = df.get_column(first).cast(pl.Float64).to_list()
    ys = df.get_column(second).cast(pl.Float64).to_list()
    ids = (
        df.get_column(subject).cast(pl.Utf8).to_list()
        if subject is not None and subject in df.columns
        else None
    )
    return xs, ys, ids


def duplicates_from_long(
    df: pl.DataFrame,
    subject: str = "subject",
    replicate: str = "replicate",
    value: str = "value",
) -> Tuple[List[float], List[float], List[str]]:
    """
    Extract duplicates from a long frame (one row per measurement).

    Within each subject, the replicate with the smaller label is taken as the
    first measurement. Subjects appear in order of first occurrence.

    Raises:
        InvalidInputError: if any subject does not have exactly two rows
    """
    _require_columns(df, subject, replicate, value)
    grouped = df.group_by(subject, maintain_order=True).agg(
        pl.col(value).sort_by(replicate).cast(pl.Float64).alias("values")
    )

    counts = grouped.get_column("values").list.len()
    bad = grouped.filter(counts != 2).get_column(subject).to_list()
    if bad:
        raise InvalidInputError(
            f"every subject needs exactly two measurements; offending: {bad}"
        )

    values = grouped.get_column("values").to_list()
    return (
        [v[0] for v in values],
        [v[1] for v in values],
        grouped.get_column(subject).cast(pl.Utf8).to_list(),
    )
