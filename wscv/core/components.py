"""
wscv.core.components
====================

Base classes for components that write to and read from the ledger.

Components receive the ledger explicitly on every call and never keep
derived state of their own; everything they know comes from the ledger.

Component Types:
- `Observer`: Validate and register raw duplicate measurements
- `Statistic`: Compute an estimate from registered observations and record it

Examples
--------
>>> from wscv.core.ledger import Ledger, create_test_connection
>>> from wscv.core.names import Namespace
>>>
>>> ledger = Ledger(create_test_connection("duckdb"), "test")
>>>
>>> class CountBatches(Statistic):
...     def step(self, ledger, study_id, step_key, time_index):
...         n = len(list(ledger.iter_payloads(Namespace.OBS, study_id)))
...         ledger.write_event(
...             time_index=time_index, namespace=self.ns_stats, kind="updated",
...             study_id=study_id, step_key=step_key,
...             payload_type="BatchCount", payload={"batches": n},
...             tag=self.tag_stats,
...         )
...
>>> CountBatches().step(ledger, "assay", "s1", "t1")
>>> list(ledger.iter_payloads(Namespace.STATS, "assay"))
[{'batches': 0}]
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union, TYPE_CHECKING

from wscv.core.names import Namespace, StudyId, StepKey, TimeIndex

NamespaceLike = Union[Namespace, str]

if TYPE_CHECKING:
    from wscv.core.ledger import Ledger


class ComponentBase(ABC):
    """
    Base class for all ledger components.

    Provides namespace conventions and requires subclasses to implement step().
    """

    @abstractmethod
    def step(
        self,
        ledger: "Ledger",
        study_id: Union[StudyId, str],
        step_key: Union[StepKey, str],
        time_index: Union[TimeIndex, str],
    ) -> None:
        """Execute this component's logic for one step of a study."""


@dataclass(kw_only=True)
class Statistic(ComponentBase):
    """
    Base class for estimate updaters.

    Statistics read observations and write the resulting estimate back to
    the ledger.
    """

    ns_stats: NamespaceLike = Namespace.STATS
    tag_stats: str = "stat:generic"

    def step(
        self,
        ledger: "Ledger",
        study_id: Union[StudyId, str],
        step_key: Union[StepKey, str],
        time_index: Union[TimeIndex, str],
    ) -> None:
        raise NotImplementedError("Subclasses must implement step()")


@dataclass(kw_only=True)
class Observer(ComponentBase):
    """
    Base class for observation validators.

    Observers validate raw measurements before they are registered, so
    statistics can trust everything they read from the OBS namespace.
    """

    ns_obs: NamespaceLike = Namespace.OBS
    tag_obs: str = "obs:generic"

    def step(
        self,
        ledger: "Ledger",
        study_id: Union[StudyId, str],
        step_key: Union[StepKey, str],
        time_index: Union[TimeIndex, str],
    ) -> None:
        raise NotImplementedError("Subclasses must implement step()")
