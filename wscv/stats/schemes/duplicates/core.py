"""
wscv.stats.schemes.duplicates.core
==================================

Core data structures for duplicate-measurement studies.

- `PairedSubjectStatistics`: validated per-subject means and differences,
  the input every CV estimator consumes
- `paired_statistics`: Bland-Altman style summary of two measurement series
- `DuplicateBatch` / `DuplicateObservation`: validation and ledger ingestion
- `reduce_duplicates`: read every recorded pair of a study back

Examples
--------
>>> from wscv.stats.schemes.duplicates.core import paired_statistics
>>> stats = paired_statistics([10, 15, 25, 30, 22, 14], [11, 14.5, 22.5, 31, 21, 15])
>>> stats.subject_count
6
>>> stats.per_subject_mean
(10.5, 14.75, 23.75, 30.5, 21.5, 14.5)
>>> stats.per_subject_difference
(-1.0, 0.5, 2.5, -1.0, 1.0, -1.0)
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypedDict, Union

import numpy as np

from wscv.core.components import Observer
from wscv.core.errors import InvalidInputError
from wscv.core.ledger import Ledger
from wscv.core.names import Namespace, StudyId, StepKey, TimeIndex


class DuplicateBatchPayload(TypedDict):
    """Payload for a recorded batch of duplicates."""

    first: List[float]
    second: List[float]
    subject_ids: Optional[List[str]]


def _as_float_tuple(name: str, values: Sequence[float]) -> Tuple[float, ...]:
    try:
        out = tuple(float(v) for v in values)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must contain real numbers") from exc
    if not all(math.isfinite(v) for v in out):
        raise InvalidInputError(f"{name} contains non-finite values")
    return out


@dataclass(frozen=True)
class PairedSubjectStatistics:
    """
    Per-subject summary of duplicate measurements.

    Attributes:
        subject_count: Number of subjects (n), at least 2
        per_subject_mean: Mean of the two measurements, one per subject
        per_subject_difference: First minus second measurement, one per subject
        raw_pair_first: Original first measurements (logarithmic method only)
        raw_pair_second: Original second measurements (logarithmic method only)

    Every supplied sequence must have exactly `subject_count` entries.
    Domain checks that only matter to one estimator (non-zero means,
    positive raw values) are left to that estimator.
    """

    subject_count: int
    per_subject_mean: Tuple[float, ...]
    per_subject_difference: Tuple[float, ...]
    raw_pair_first: Optional[Tuple[float, ...]] = None
    raw_pair_second: Optional[Tuple[float, ...]] = None

    def __post_init__(self) -> None:
        n = self.subject_count
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
            raise InvalidInputError(f"subject_count must be an integer, got {n!r}")
        if n < 2:
            raise InvalidInputError(
                f"at least two subjects are required, got subject_count={n}"
            )
        object.__setattr__(self, "subject_count", int(n))

        for name in ("per_subject_mean", "per_subject_difference"):
            object.__setattr__(self, name, _as_float_tuple(name, getattr(self, name)))

        if (self.raw_pair_first is None) != (self.raw_pair_second is None):
            raise InvalidInputError(
                "raw_pair_first and raw_pair_second must be given together"
            )
        if self.raw_pair_first is not None:
            for name in ("raw_pair_first", "raw_pair_second"):
                object.__setattr__(
                    self, name, _as_float_tuple(name, getattr(self, name))
                )

        for name in (
            "per_subject_mean",
            "per_subject_difference",
            "raw_pair_first",
            "raw_pair_second",
        ):
            values = getattr(self, name)
            if values is not None and len(values) != n:
                raise InvalidInputError(
                    f"{name} has {len(values)} entries, expected subject_count={n}"
                )

    @property
    def has_raw_pairs(self) -> bool:
        return self.raw_pair_first is not None

    @property
    def mean_difference(self) -> float:
        """Mean of the paired differences (the Bland-Altman bias)."""
        return float(np.mean(self.per_subject_difference))

    @property
    def sd_difference(self) -> float:
        """Sample standard deviation of the paired differences."""
        return float(np.std(self.per_subject_difference, ddof=1))

    def limits_of_agreement(self, two: float = 1.96) -> Tuple[float, float]:
        """Bland-Altman limits of agreement, ``bias -/+ two * sd``."""
        bias, sd = self.mean_difference, self.sd_difference
        return bias - two * sd, bias + two * sd


def paired_statistics(
    first: Sequence[float], second: Sequence[float]
) -> PairedSubjectStatistics:
    """
    Summarise two measurement series taken on the same subjects.

    Pairs with a missing value (NaN) on either side are dropped before
    anything else is computed.

    Args:
        first: First measurement of each subject
        second: Second measurement of each subject, same order

    Returns:
        PairedSubjectStatistics with means ``(first + second) / 2``,
        differences ``first - second`` and the raw pairs kept

    Raises:
        InvalidInputError: if the series differ in length or fewer than two
            complete pairs remain
    """
    try:
        x = np.asarray(first, dtype=float)
        y = np.asarray(second, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("measurements must be real numbers") from exc

    if x.ndim != 1 or y.ndim != 1:
        raise InvalidInputError("measurements must be one-dimensional sequences")
    if x.shape != y.shape:
        raise InvalidInputError(
            f"measurement series differ in length: {x.size} vs {y.size}"
        )

    complete = ~(np.isnan(x) | np.isnan(y))
    x, y = x[complete], y[complete]

    return PairedSubjectStatistics(
        subject_count=int(x.size),
        per_subject_mean=tuple(((x + y) / 2.0).tolist()),
        per_subject_difference=tuple((x - y).tolist()),
        raw_pair_first=tuple(x.tolist()),
        raw_pair_second=tuple(y.tolist()),
    )


# --- Ledger ingestion ---

_IDS_ERROR = "Subject ids must be given for every pair or for none"
_FINITE_ERROR = "Measurements must be finite"
_VALUE_CHECK_ERRORS = (_IDS_ERROR, _FINITE_ERROR)


@dataclass
class DuplicateBatch:
    """
    A batch of duplicate measurements waiting to be registered.

    Pairs are accumulated with `add_pair` / `add_pairs`; problems are
    collected in `validation_errors` rather than raised, so a caller can
    report all of them at once.
    """

    first: List[float] = field(default_factory=list)
    second: List[float] = field(default_factory=list)
    subject_ids: List[str] = field(default_factory=list)

    timestamp: Optional[datetime] = None
    validation_errors: List[str] = field(default_factory=list)

    def add_pair(
        self, first: float, second: float, subject_id: Optional[str] = None
    ) -> None:
        """Add one subject's duplicate measurements."""
        self.first.append(float(first))
        self.second.append(float(second))
        if subject_id is not None:
            self.subject_ids.append(str(subject_id))

    def add_pairs(
        self,
        first: Sequence[float],
        second: Sequence[float],
        subject_ids: Optional[Sequence[str]] = None,
    ) -> None:
        """Add several subjects at once."""
        if len(first) != len(second):
            self.validation_errors.append(
                f"Series differ in length: {len(first)} vs {len(second)}"
            )
            return
        ids: Sequence[Optional[str]] = (
            subject_ids if subject_ids is not None else [None] * len(first)
        )
        if len(ids) != len(first):
            self.validation_errors.append("subject_ids must match the number of pairs")
            return
        for a, b, sid in zip(first, second, ids):
            self.add_pair(a, b, sid)

    def validate(self) -> bool:
        """Validate the batch and return True if valid."""
        # Structural errors from add_pairs are kept; value checks are redone.
        self.validation_errors = [
            e for e in self.validation_errors if e not in _VALUE_CHECK_ERRORS
        ]

        if self.subject_ids and len(self.subject_ids) != len(self.first):
            self.validation_errors.append(_IDS_ERROR)
        if not all(math.isfinite(v) for v in self.first + self.second):
            self.validation_errors.append(_FINITE_ERROR)

        return len(self.validation_errors) == 0

    def is_empty(self) -> bool:
        return not self.first

    def to_payload(self) -> DuplicateBatchPayload:
        return {
            "first": list(self.first),
            "second": list(self.second),
            "subject_ids": list(self.subject_ids) if self.subject_ids else None,
        }


@dataclass(kw_only=True)
class DuplicateObservation(Observer):
    """
    Observation component for duplicate-measurement studies.

    Parameters
    ----------
    auto_validate : bool, default=True
        Validate batches before registration
    tag_obs : str, default="obs:duplicates"
        Tag to use for observation events
    """

    auto_validate: bool = True
    tag_obs: str = "obs:duplicates"

    current_batch: Optional[DuplicateBatch] = field(default=None, init=False)

    def register_batch(
        self,
        ledger: Ledger,
        study_id: Union[str, StudyId],
        step_key: Union[str, StepKey],
        time_index: Union[str, TimeIndex],
        batch: DuplicateBatch,
        force: bool = False,
    ) -> bool:
        """
        Register a batch to the ledger.

        Returns
        -------
        bool
            True if the batch was written, False if it was empty or invalid
            (see ``batch.validation_errors``)
        """
        if not force and self.auto_validate and not batch.validate():
            return False

        if not force and batch.is_empty():
            return False

        ledger.write_event(
            time_index=str(time_index),
            namespace=self.ns_obs,
            kind="observation",
            study_id=str(study_id),
            step_key=str(step_key),
            payload_type="DuplicateBatch",
            payload=dict(batch.to_payload()),
            tag=self.tag_obs,
            ts=batch.timestamp or datetime.now(timezone.utc),
        )
        return True

    def step(
        self,
        ledger: Ledger,
        study_id: Union[StudyId, str],
        step_key: Union[StepKey, str],
        time_index: Union[TimeIndex, str],
    ) -> None:
        """Register `current_batch`, if one is staged, then clear it."""
        if self.current_batch is None:
            return
        batch = self.current_batch
        if not self.register_batch(ledger, study_id, step_key, time_index, batch):
            raise InvalidInputError(
                "duplicate batch rejected: "
                + ("; ".join(batch.validation_errors) or "batch is empty")
            )
        self.current_batch = None


def reduce_duplicates(
    ledger: Ledger, *, study_id: Union[StudyId, str]
) -> Tuple[List[float], List[float]]:
    """Concatenate every recorded batch of a study, in write order."""
    first: List[float] = []
    second: List[float] = []
    for p in ledger.iter_payloads(Namespace.OBS, study_id, "DuplicateBatch"):
        first.extend(float(v) for v in p["first"])
        second.extend(float(v) for v in p["second"])
    return first, second


def study_summary(ledger: Ledger, *, study_id: Union[StudyId, str]) -> Dict[str, Any]:
    """Counts of recorded batches and pairs for a study."""
    batches = list(ledger.iter_payloads(Namespace.OBS, study_id, "DuplicateBatch"))
    return {
        "study_id": str(study_id),
        "batches": len(batches),
        "pairs": sum(len(p["first"]) for p in batches),
    }
