"""
wscv.api.repeatability
======================

Repeatability facade: within-subject CV in the vocabulary of a lab.

Examples
--------
>>> from wscv.api.repeatability import within_subject_cv, compare_methods
>>> t1 = [10, 15, 25, 30, 22, 14]
>>> t2 = [11, 14.5, 22.5, 31, 21, 15]
>>> res = within_subject_cv(t1, t2, method="root_mean", confidence_level=0.90)
>>> round(res.point_estimate_percent, 2)
4.94
>>> sorted(m.value for m in compare_methods(t1, t2, confidence_level=0.90))
['logarithmic', 'root_mean', 'whole_dataset']

A study that grows batch by batch, with every estimate kept in a ledger:

>>> from wscv.core.ledger import Ledger, create_test_connection
>>> study = RepeatabilityStudy("glucose_assay", CVConfig(method="logarithmic"))
>>> study.setup(Ledger(create_test_connection("duckdb"), "lab"))
>>> study.add_duplicates([10, 15, 25], [11, 14.5, 22.5])
>>> study.add_duplicates([30, 22, 14], [31, 21, 15])
>>> round(study.analyze().point_estimate_percent, 2)
5.07
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from wscv.core.errors import InvalidMethodError
from wscv.core.ledger import Ledger
from wscv.core.names import Namespace, StudyId
from wscv.stats.common.intervals import validate_confidence_level
from wscv.stats.schemes.duplicates.core import (
    DuplicateBatch,
    DuplicateObservation,
    paired_statistics,
    study_summary,
)
from wscv.stats.schemes.duplicates.estimators import CVMethod, CVResult, estimate
from wscv.stats.schemes.duplicates.statistics import (
    WithinSubjectCVStatistic,
    latest_estimate,
)

logger = logging.getLogger(__name__)


def within_subject_cv(
    first: Sequence[float],
    second: Sequence[float],
    method: Union[CVMethod, str] = "root_mean",
    confidence_level: Optional[float] = 0.95,
) -> CVResult:
    """
    Within-subject CV of two measurement series taken on the same subjects.

    Parameters
    ----------
    first, second : sequence of float
        First and second measurement of each subject, same order
    method : {"root_mean", "logarithmic", "whole_dataset"}, default="root_mean"
        Estimator; see `wscv.stats.schemes.duplicates.estimators`
    confidence_level : float, default=0.95
        Interval coverage; ignored by "whole_dataset"

    Returns
    -------
    CVResult
    """
    return estimate(paired_statistics(first, second), method, confidence_level)


def compare_methods(
    first: Sequence[float],
    second: Sequence[float],
    confidence_level: float = 0.95,
) -> Dict[CVMethod, CVResult]:
    """
    Run every estimator on the same data.

    No method is singled out; the caller decides which one to report. Any
    error from an individual estimator propagates.
    """
    stats = paired_statistics(first, second)
    return {method: estimate(stats, method, confidence_level) for method in CVMethod}


@dataclass
class CVConfig:
    """
    Estimator configuration for a repeatability study.

    Parameters
    ----------
    method : str, default="root_mean"
        "root_mean", "logarithmic" or "whole_dataset"
    confidence_level : float, default=0.95
        Interval coverage in (0, 1); ignored by "whole_dataset"

    Examples
    --------
    >>> CVConfig(method="logarithmic", confidence_level=0.90).validate()
    >>> CVConfig(confidence_level=1.0).validate()
    Traceback (most recent call last):
    ...
    wscv.core.errors.InvalidMethodError: confidence_level must be in (0, 1), got 1.0
    """

    method: Union[CVMethod, str] = CVMethod.ROOT_MEAN
    confidence_level: Optional[float] = 0.95

    def validate(self) -> None:
        """Validate configuration."""
        method = CVMethod.parse(self.method)
        if method.requires_confidence_level:
            if self.confidence_level is None:
                raise InvalidMethodError(
                    f"{method.value} method requires a confidence_level"
                )
            validate_confidence_level(self.confidence_level)


@dataclass
class RepeatabilityStudy:
    """
    A duplicate-measurement study backed by a ledger.

    Duplicates may arrive in several batches; `analyze` always estimates
    from everything recorded so far and appends the estimate to the ledger.

    Attributes
    ----------
    study_id : str
        Identifier used for every event of this study
    config : CVConfig
        Estimator configuration
    """

    study_id: StudyId
    config: CVConfig = field(default_factory=CVConfig)

    observation: DuplicateObservation = field(init=False)
    statistic: WithinSubjectCVStatistic = field(init=False)
    _ledger: Optional[Ledger] = field(default=None, init=False, repr=False)
    _batches: int = field(default=0, init=False)
    _results_history: List[CVResult] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.config.validate()
        self.observation = DuplicateObservation()
        self.statistic = WithinSubjectCVStatistic(
            method=CVMethod.parse(self.config.method),
            confidence_level=self.config.confidence_level,
        )

    @property
    def _is_setup(self) -> bool:
        return self._ledger is not None

    def setup(self, ledger: Ledger) -> None:
        """Attach a ledger and record the study design."""
        self._ledger = ledger
        ledger.write_event(
            time_index="t0",
            namespace=Namespace.DESIGN,
            kind="study_design",
            study_id=str(self.study_id),
            step_key="design",
            payload_type="StudyDesign",
            payload={
                "method": self.statistic.method.value,
                "confidence_level": self.config.confidence_level,
                "measurements_per_subject": 2,
            },
        )

    def _require_ledger(self) -> Ledger:
        if self._ledger is None:
            raise RuntimeError("Study not setup. Call setup(ledger) first.")
        return self._ledger

    def add_duplicates(
        self,
        first: Sequence[float],
        second: Sequence[float],
        subject_ids: Optional[Sequence[str]] = None,
    ) -> None:
        """Validate and record a batch of duplicate measurements."""
        ledger = self._require_ledger()
        batch = DuplicateBatch()
        batch.add_pairs(first, second, subject_ids)

        look = self._batches + 1
        self.observation.current_batch = batch
        try:
            self.observation.step(
                ledger, self.study_id, step_key=f"batch{look}", time_index=f"t{look}"
            )
        finally:
            self.observation.current_batch = None
        self._batches = look

    def analyze(self) -> CVResult:
        """Estimate from all recorded duplicates and record the estimate."""
        ledger = self._require_ledger()
        step = f"analysis{len(self._results_history) + 1}"
        self.statistic.step(ledger, self.study_id, step, f"t{self._batches}")

        result = latest_estimate(ledger, self.study_id, self.statistic.method)
        if result is None:
            raise RuntimeError(f"No estimate recorded for study {self.study_id}")
        self._results_history.append(result)
        return result

    def get_summary(self) -> Dict[str, Any]:
        """Recorded batches and pairs, plus the latest estimate if any."""
        summary = study_summary(self._require_ledger(), study_id=self.study_id)
        summary.update(
            {
                "method": self.statistic.method.value,
                "confidence_level": self.config.confidence_level,
                "analyses": len(self._results_history),
                "latest": (
                    self._results_history[-1].to_payload()
                    if self._results_history
                    else None
                ),
            }
        )
        return summary
