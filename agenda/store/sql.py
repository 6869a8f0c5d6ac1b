from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text as sql_text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agenda.db_init import DOCUMENTS_TABLE
from agenda.store.base import DocumentSnapshot, DocumentStore, Query, run_query, split_path

logger = logging.getLogger(__name__)

_TIMESTAMP_TAG = "$ts"


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_TIMESTAMP_TAG: value.isoformat()}
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Unsupported document value: {type(value).__name__}")


def _decode(obj: Dict[str, Any]) -> Any:
    if len(obj) == 1 and _TIMESTAMP_TAG in obj:
        try:
            return datetime.fromisoformat(obj[_TIMESTAMP_TAG])
        except (TypeError, ValueError):
            return obj
    return obj


def dumps_document(data: Dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False, default=_encode)


def loads_document(raw: str | None) -> Dict[str, Any]:
    try:
        payload = json.loads(raw or "{}", object_hook=_decode)
    except ValueError:
        logger.warning("Dropping unreadable document payload.")
        payload = {}
    return payload if isinstance(payload, dict) else {}


class SqlDocumentStore(DocumentStore):
    """Documents kept as JSON rows of one table, one row per document path."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        super().__init__()
        self._session_factory = session_factory

    async def get(self, path: str) -> Optional[DocumentSnapshot]:
        collection, doc_id = split_path(path)
        async with self._session_factory() as session:
            row = (await session.execute(
                sql_text(f"SELECT doc_id, data_json FROM {DOCUMENTS_TABLE} WHERE path = :path"),
                {"path": f"{collection}/{doc_id}"},
            )).mappings().fetchone()
        if not row:
            return None
        return DocumentSnapshot(id=row["doc_id"], path=f"{collection}/{doc_id}", data=loads_document(row["data_json"]))

    async def query(self, query: Query) -> List[DocumentSnapshot]:
        async with self._session_factory() as session:
            rows = (await session.execute(
                sql_text(
                    f"""
                    SELECT path, doc_id, data_json
                    FROM {DOCUMENTS_TABLE}
                    WHERE collection = :collection
                    """
                ),
                {"collection": query.collection},
            )).mappings().all()
        docs = [
            DocumentSnapshot(id=row["doc_id"], path=row["path"], data=loads_document(row["data_json"]))
            for row in rows
        ]
        return run_query(query, docs)

    async def _upsert(self, session: AsyncSession, path: str, fields: Dict[str, Any], merge: bool) -> str:
        collection, doc_id = split_path(path)
        full_path = f"{collection}/{doc_id}"
        data = dict(fields)
        if merge:
            existing = (await session.execute(
                sql_text(f"SELECT data_json FROM {DOCUMENTS_TABLE} WHERE path = :path"),
                {"path": full_path},
            )).scalar_one_or_none()
            if existing is not None:
                data = {**loads_document(existing), **data}
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {DOCUMENTS_TABLE} (path, collection, doc_id, data_json, updated_at)
                VALUES (:path, :collection, :doc_id, :data_json, :updated_at)
                ON CONFLICT(path) DO UPDATE SET
                    data_json = EXCLUDED.data_json,
                    updated_at = EXCLUDED.updated_at
                """
            ),
            {
                "path": full_path,
                "collection": collection,
                "doc_id": doc_id,
                "data_json": dumps_document(data),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        return collection

    async def write(self, path: str, fields: Dict[str, Any], merge: bool = False) -> None:
        async with self._session_factory() as session:
            collection = await self._upsert(session, path, fields, merge)
            await session.commit()
        await self._notify([collection])

    async def delete(self, path: str) -> None:
        collection, doc_id = split_path(path)
        async with self._session_factory() as session:
            await session.execute(
                sql_text(f"DELETE FROM {DOCUMENTS_TABLE} WHERE path = :path"),
                {"path": f"{collection}/{doc_id}"},
            )
            await session.commit()
        await self._notify([collection])

    async def batch_write(self, writes: Sequence[Tuple[str, Dict[str, Any]]]) -> None:
        touched = []
        async with self._session_factory() as session:
            try:
                for path, fields in writes:
                    touched.append(await self._upsert(session, path, fields, True))
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        await self._notify(touched)
