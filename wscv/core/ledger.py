"""
wscv.core.ledger
================

ibis-framework based, append-only ledger for repeatability studies.

The ledger is deliberately small:
- Backend-agnostic via ibis-framework (duckdb in memory by default)
- JSON payloads stored as UTF-8 strings, wrapped/unwrapped per payload type
- A monotone ``seq`` column, so reads come back in write order
- Automatic wscv_version tracking

Examples:
---------
>>> from wscv.core.ledger import Ledger, create_test_connection
>>> from wscv.core.names import Namespace
>>>
>>> conn = create_test_connection("duckdb")
>>> ledger = Ledger(conn, "demo")
>>> ledger.write_event(
...     time_index="t1", namespace=Namespace.OBS, kind="observation",
...     study_id="assay", step_key="s1", payload_type="DuplicateBatch",
...     payload={"first": [10.0, 15.0], "second": [11.0, 14.5]}
... )
>>> rows = ledger.unwrap_results(ledger.table.execute())
>>> rows[0]["payload"]["second"]
[11.0, 14.5]
>>> [p["first"] for p in ledger.iter_payloads(Namespace.OBS, "assay")]
[[10.0, 15.0]]
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Union
import json
import logging
import uuid as uuid_module

import ibis
import pandas as pd
from ibis import BaseBackend
from ibis.expr.types import Table

from wscv.core.names import Namespace, StudyId, StepKey, TimeIndex
from wscv.__version__ import __version__

logger = logging.getLogger(__name__)

NamespaceLike = Union[Namespace, str]


def get_ledger_schema() -> ibis.Schema:
    """Get the standardized ledger schema using ibis.Schema."""
    return ibis.schema(
        [
            ("seq", "int64"),
            ("uuid", "string"),
            ("ledger_name", "string"),
            ("time_index", "string"),
            ("ts", "timestamp"),
            ("namespace", "string"),
            ("kind", "string"),
            ("study_id", "string"),
            ("step_key", "string"),
            ("tag", "string"),
            ("payload_type", "string"),
            ("payload", "string"),  # JSON text
            ("wscv_version", "string"),
        ]
    )


class PayloadType(ABC):
    """Abstract base class for payload type handlers."""

    @abstractmethod
    def wrap(self, data: Any) -> str:
        """Convert data to JSON string for storage."""

    @abstractmethod
    def unwrap(self, json_str: str) -> Any:
        """Convert JSON string back to data."""


class JSONPayloadType(PayloadType):
    """Default JSON payload type handler."""

    def wrap(self, data: Any) -> str:
        return json.dumps(data, separators=(",", ":"))

    def unwrap(self, json_str: str) -> Any:
        return json.loads(json_str)


class PayloadTypeRegistry:
    """Registry for payload type handlers.

    Payload types without a registered handler fall back to plain JSON.
    """

    _handlers: Dict[str, PayloadType] = {}
    _default_handler = JSONPayloadType()

    @classmethod
    def register(cls, payload_type: str, handler: PayloadType) -> None:
        cls._handlers[payload_type] = handler

    @classmethod
    def get_handler(cls, payload_type: str) -> PayloadType:
        return cls._handlers.get(payload_type, cls._default_handler)

    @classmethod
    def wrap(cls, payload_type: str, data: Any) -> str:
        return cls.get_handler(payload_type).wrap(data)

    @classmethod
    def unwrap(cls, payload_type: str, json_str: str) -> Any:
        return cls.get_handler(payload_type).unwrap(json_str)


class Ledger:
    """
    Append-only event table for one or more studies.

    Responsibilities:
    - Table lifecycle on the ibis backend
    - Automatic ledger_name, seq and wscv_version injection
    - Payload wrapping/unwrapping via PayloadTypeRegistry

    Filtering and aggregation beyond `iter_payloads` are left to callers,
    who build ibis expressions on `table`.
    """

    def __init__(
        self,
        connection: BaseBackend,
        ledger_name: str = "default",
        table_name: str = "ledger",
    ):
        """Initialize ledger with connection and names.

        Parameters
        ----------
        connection : BaseBackend
            Ibis backend connection
        ledger_name : str
            Name of this ledger instance (several ledgers may share a table)
        table_name : str
            Name of the table in the backend
        """
        self.connection = connection
        self.ledger_name = ledger_name
        self.table_name = table_name
        self._ensure_table_exists()

    def _ensure_table_exists(self) -> None:
        if self.table_name not in self.connection.list_tables():
            self.connection.create_table(self.table_name, schema=get_ledger_schema())

    @property
    def table(self) -> Table:
        """
        Ibis table filtered to this ledger's name.

        Examples
        --------
        >>> conn = create_test_connection("duckdb")
        >>> ledger = Ledger(conn, "empty")
        >>> int(ledger.table.count().execute())
        0
        """
        table = self.connection.table(self.table_name)
        return table.filter(table.ledger_name == self.ledger_name)

    @property
    def raw_table(self) -> Table:
        """Unfiltered ibis table, for looking across ledgers."""
        return self.connection.table(self.table_name)

    def write_event(
        self,
        *,
        time_index: Union[TimeIndex, str],
        namespace: NamespaceLike,
        kind: str,
        study_id: Union[StudyId, str],
        step_key: Union[StepKey, str],
        payload_type: str,
        payload: Any,
        tag: Optional[str] = None,
        ts: Optional[datetime] = None,
    ) -> None:
        """Append a typed event to the ledger.

        Parameters
        ----------
        time_index : TimeIndex or str
            Logical time of the event (e.g. batch label)
        namespace : NamespaceLike
            Event namespace
        kind : str
            Event kind, e.g. "observation" or "updated"
        study_id : StudyId or str
            Study identifier
        step_key : StepKey or str
            Step key within the study
        payload_type : str
            Type of payload for wrap/unwrap handling
        payload : Any
            Payload data to be wrapped
        tag : str, optional
            Optional tag for filtering
        ts : datetime, optional
            Wall-clock timestamp, defaults to now (stored as naive UTC)
        """
        if ts is None:
            ts = datetime.now(timezone.utc)
        if ts.tzinfo is not None:
            ts = ts.astimezone(timezone.utc).replace(tzinfo=None)

        existing = self.raw_table.to_pandas()
        record = {
            "seq": len(existing),
            "uuid": str(uuid_module.uuid4()),
            "ledger_name": self.ledger_name,
            "time_index": str(time_index),
            "ts": ts,
            "namespace": str(namespace),
            "kind": kind,
            "study_id": str(study_id),
            "step_key": str(step_key),
            "tag": tag or "",
            "payload_type": payload_type,
            "payload": PayloadTypeRegistry.wrap(payload_type, payload),
            "wscv_version": __version__,
        }

        new_row = pd.DataFrame([record])
        combined = new_row if existing.empty else pd.concat(
            [existing, new_row], ignore_index=True
        )
        self.connection.create_table(
            self.table_name,
            ibis.memtable(combined, schema=get_ledger_schema()),
            overwrite=True,
        )
        logger.debug(
            "ledger %s: %s/%s event for %s (seq=%d)",
            self.ledger_name,
            record["namespace"],
            payload_type,
            record["study_id"],
            record["seq"],
        )

    def unwrap_payload(self, payload_type: str, payload_json: str) -> Any:
        return PayloadTypeRegistry.unwrap(payload_type, payload_json)

    def unwrap_results(self, df: Any) -> List[Dict[str, Any]]:
        """
        Unwrap payloads in query results.

        Takes a pandas DataFrame from ibis query execution and decodes the
        payload column according to each row's payload_type.
        """
        records: List[Dict[str, Any]] = df.to_dict("records")

        for record in records:
            if "payload" in record and "payload_type" in record:
                record["payload"] = self.unwrap_payload(
                    record["payload_type"], record["payload"]
                )

        return records

    def iter_payloads(
        self,
        namespace: NamespaceLike,
        study_id: Union[StudyId, str],
        payload_type: Optional[str] = None,
    ) -> Iterator[Any]:
        """Yield unwrapped payloads for one study and namespace, in write order."""
        t = self.table
        expr = t.filter(
            (t.namespace == str(namespace)) & (t.study_id == str(study_id))
        )
        if payload_type is not None:
            expr = expr.filter(expr.payload_type == payload_type)

        for record in self.unwrap_results(expr.order_by("seq").execute()):
            yield record["payload"]


def create_test_connection(backend: str = "duckdb") -> BaseBackend:
    """Create an in-memory ibis connection.

    Parameters
    ----------
    backend : str
        Backend type ("duckdb" or "polars")
    """
    if backend == "duckdb":
        return ibis.duckdb.connect(":memory:")
    elif backend == "polars":
        return ibis.polars.connect()
    else:
        raise ValueError(f"Unsupported backend: {backend}. Use 'duckdb' or 'polars'.")
