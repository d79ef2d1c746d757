"""
wscv.stats.schemes.duplicates.statistics
========================================

Ledger component that records within-subject CV estimates.

`WithinSubjectCVStatistic` reads every duplicate pair recorded for a study,
summarises them, runs the configured estimator and appends the result to the
STATS namespace as a ``WithinSubjectCV`` payload. Earlier estimates stay in
the ledger, so the history of a growing study is preserved.

Events consumed:
    - Namespace.OBS: DuplicateBatch observations

Events produced:
    - Namespace.STATS: WithinSubjectCV estimates

Examples
--------
>>> from wscv.core.ledger import Ledger, create_test_connection
>>> from wscv.stats.schemes.duplicates.core import DuplicateBatch, DuplicateObservation
>>> L = Ledger(create_test_connection("duckdb"), "doc")
>>> batch = DuplicateBatch()
>>> batch.add_pairs([10, 15, 25, 30, 22, 14], [11, 14.5, 22.5, 31, 21, 15])
>>> DuplicateObservation().register_batch(L, "assay", "s1", "t1", batch)
True
>>> WithinSubjectCVStatistic(method=CVMethod.WHOLE_DATASET).step(L, "assay", "s1", "t1")
>>> round(latest_estimate(L, "assay").point_estimate_percent, 2)
4.86
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from wscv.core.components import Statistic
from wscv.core.ledger import Ledger
from wscv.core.names import Namespace, StudyId, StepKey, TimeIndex
from wscv.stats.schemes.duplicates.core import paired_statistics, reduce_duplicates
from wscv.stats.schemes.duplicates.estimators import CVEstimator, CVMethod, CVResult

logger = logging.getLogger(__name__)


@dataclass(kw_only=True)
class WithinSubjectCVStatistic(Statistic):
    """
    Estimate the within-subject CV from all duplicates recorded so far.

    Attributes:
        method: Estimator to use (default root mean square)
        confidence_level: Interval coverage; ignored for whole dataset
        tag_stats: Tag for statistic events (default "stat:wscv")
    """

    method: CVMethod = CVMethod.ROOT_MEAN
    confidence_level: Optional[float] = 0.95
    tag_stats: str = "stat:wscv"

    _estimator: CVEstimator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # Fail on a bad configuration before any data is read.
        self._estimator = CVEstimator(self.method, self.confidence_level)
        self.method = self._estimator.method

    def step(
        self,
        ledger: Ledger,
        study_id: Union[StudyId, str],
        step_key: Union[StepKey, str],
        time_index: Union[TimeIndex, str],
    ) -> None:
        """Compute the estimate and write it to the ledger."""
        first, second = reduce_duplicates(ledger, study_id=study_id)
        result = self._estimator(paired_statistics(first, second))

        ledger.write_event(
            time_index=time_index,
            namespace=self.ns_stats,
            kind="updated",
            study_id=str(study_id),
            step_key=str(step_key),
            payload_type="WithinSubjectCV",
            payload=result.to_payload(),
            tag=self.tag_stats,
        )
        logger.info(
            "study %s: %s CV %.3f%% (n=%d)",
            study_id,
            result.method.value,
            result.point_estimate_percent,
            result.subject_count,
        )


def latest_estimate(
    ledger: Ledger,
    study_id: Union[StudyId, str],
    method: Optional[Union[CVMethod, str]] = None,
) -> Optional[CVResult]:
    """Most recent recorded estimate for a study, optionally for one method."""
    wanted = CVMethod.parse(method) if method is not None else None
    latest: Optional[CVResult] = None
    for payload in ledger.iter_payloads(Namespace.STATS, study_id, "WithinSubjectCV"):
        result = CVResult.from_payload(payload)
        if wanted is None or result.method is wanted:
            latest = result
    return latest
