"""
wscv.core.names
===============

Typed names shared across the package.

- `Namespace`: an Enum for well-known ledger namespaces.
- `StudyId`, `StepKey`, `TimeIndex`: NewType wrappers for clarity.
- Common `Literal` tags for duplicate-measurement studies.

Examples
--------
>>> from wscv.core.names import Namespace, StudyId
>>> Namespace.OBS.value
'obs'
>>> sid = StudyId("assay#1"); isinstance(sid, str)
True
"""

from __future__ import annotations
from enum import Enum
from typing import Literal, NewType


class Namespace(str, Enum):
    """Well-known ledger namespaces.

    - OBS: raw duplicate measurements
    - STATS: estimates derived from the observations
    - DESIGN: study configuration recorded at setup
    """

    OBS = "obs"
    STATS = "stats"
    DESIGN = "design"

    def __str__(self) -> str:
        return self.value


StudyId = NewType("StudyId", str)
StepKey = NewType("StepKey", str)
TimeIndex = NewType("TimeIndex", str)

# Tags
DuplicatesObsTag = Literal["obs:duplicates"]
WithinSubjectCVTag = Literal["stat:wscv"]
