from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Sequence, Tuple

from agenda.store.base import DocumentSnapshot, DocumentStore, Query, run_query, split_path


class MemoryDocumentStore(DocumentStore):
    """In-process store; used for tests and single-process development."""

    def __init__(self) -> None:
        super().__init__()
        self._docs: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _snapshot(self, collection: str, doc_id: str) -> DocumentSnapshot:
        data = self._docs[collection][doc_id]
        return DocumentSnapshot(id=doc_id, path=f"{collection}/{doc_id}", data=copy.deepcopy(data))

    async def get(self, path: str) -> Optional[DocumentSnapshot]:
        collection, doc_id = split_path(path)
        if doc_id not in self._docs.get(collection, {}):
            return None
        return self._snapshot(collection, doc_id)

    async def query(self, query: Query) -> List[DocumentSnapshot]:
        docs = [self._snapshot(query.collection, doc_id) for doc_id in self._docs.get(query.collection, {})]
        return run_query(query, docs)

    def _apply(self, path: str, fields: Dict[str, Any], merge: bool) -> str:
        collection, doc_id = split_path(path)
        bucket = self._docs.setdefault(collection, {})
        if merge and doc_id in bucket:
            bucket[doc_id].update(copy.deepcopy(fields))
        else:
            bucket[doc_id] = copy.deepcopy(dict(fields))
        return collection

    async def write(self, path: str, fields: Dict[str, Any], merge: bool = False) -> None:
        collection = self._apply(path, fields, merge)
        await self._notify([collection])

    async def delete(self, path: str) -> None:
        collection, doc_id = split_path(path)
        self._docs.get(collection, {}).pop(doc_id, None)
        await self._notify([collection])

    async def batch_write(self, writes: Sequence[Tuple[str, Dict[str, Any]]]) -> None:
        for path, _ in writes:
            split_path(path)
        touched = [self._apply(path, fields, True) for path, fields in writes]
        await self._notify(touched)
