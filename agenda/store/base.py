"""Document-store contract consumed by the entity hooks.

Paths alternate collection and document segments: ``users/{uid}/todos/{todo_id}``.
Subscribers always receive the full current result set of their query.
"""
from __future__ import annotations

import itertools
import logging
import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

_OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_MISSING = object()


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def matches(self, data: Dict[str, Any]) -> bool:
        current = data.get(self.field, _MISSING)
        if current is _MISSING or current is None:
            return False
        try:
            return bool(_OPERATORS[self.op](current, self.value))
        except TypeError:
            return False


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    collection: str
    filters: Tuple[Filter, ...] = ()
    order_by: Tuple[OrderBy, ...] = ()

    def where(self, field_name: str, op: str, value: Any) -> "Query":
        return Query(self.collection, self.filters + (Filter(field_name, op, value),), self.order_by)

    def ordered(self, field_name: str, descending: bool = False) -> "Query":
        return Query(self.collection, self.filters, self.order_by + (OrderBy(field_name, descending),))


@dataclass(frozen=True)
class DocumentSnapshot:
    id: str
    path: str
    data: Dict[str, Any] = field(default_factory=dict)


SnapshotCallback = Callable[[List[DocumentSnapshot]], None]
Unsubscribe = Callable[[], None]


def split_path(path: str) -> Tuple[str, str]:
    parts = [part for part in str(path or "").split("/") if part]
    if len(parts) < 2 or len(parts) % 2 != 0:
        raise ValueError(f"Not a document path: {path!r}")
    return "/".join(parts[:-1]), parts[-1]


def join_path(*parts: str) -> str:
    return "/".join(str(part).strip("/") for part in parts if str(part).strip("/"))


def run_query(query: Query, documents: Iterable[DocumentSnapshot]) -> List[DocumentSnapshot]:
    """Apply filters and ordering the way the managed store does.

    Documents lacking a filtered or ordered field are left out of the result.
    """
    result = []
    for doc in documents:
        if not all(flt.matches(doc.data) for flt in query.filters):
            continue
        if any(doc.data.get(order.field) is None for order in query.order_by):
            continue
        result.append(doc)
    for order in reversed(query.order_by):
        result.sort(key=lambda d, name=order.field: d.data.get(name), reverse=order.descending)
    return result


class DocumentStore(ABC):
    """Store with realtime listeners driven by local commits."""

    def __init__(self) -> None:
        self._listeners: Dict[int, Tuple[Query, SnapshotCallback]] = {}
        self._listener_ids = itertools.count(1)

    @abstractmethod
    async def get(self, path: str) -> Optional[DocumentSnapshot]: ...

    @abstractmethod
    async def query(self, query: Query) -> List[DocumentSnapshot]: ...

    @abstractmethod
    async def write(self, path: str, fields: Dict[str, Any], merge: bool = False) -> None: ...

    @abstractmethod
    async def delete(self, path: str) -> None: ...

    @abstractmethod
    async def batch_write(self, writes: Sequence[Tuple[str, Dict[str, Any]]]) -> None: ...

    async def subscribe(self, query: Query, on_snapshot: SnapshotCallback) -> Unsubscribe:
        listener_id = next(self._listener_ids)
        self._listeners[listener_id] = (query, on_snapshot)
        await self._deliver(query, on_snapshot)

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def _notify(self, collections: Iterable[str]) -> None:
        touched = set(collections)
        for listener_id, (query, callback) in list(self._listeners.items()):
            if query.collection not in touched:
                continue
            if listener_id not in self._listeners:
                continue
            await self._deliver(query, callback)

    async def _deliver(self, query: Query, callback: SnapshotCallback) -> None:
        # A listener whose query cannot run is skipped; the commit already happened.
        try:
            snapshot = await self.query(query)
        except Exception as exc:
            logger.exception("Snapshot query failed for %s: %s", query.collection, exc)
            return
        try:
            callback(snapshot)
        except Exception as exc:
            logger.exception("Snapshot listener failed for %s: %s", query.collection, exc)

    async def close(self) -> None:
        self._listeners.clear()
