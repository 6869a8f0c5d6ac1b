from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from agenda.clock import SystemClock, day_bounds
from agenda.crypto import CryptoAdapter
from agenda.hooks.base import LiveCollection, new_id
from agenda.models import EntityType, JournalEntry
from agenda.store.base import DocumentSnapshot, DocumentStore, Query
from agenda.undo import UndoCoordinator

logger = logging.getLogger(__name__)

JOURNAL_COLLECTION = "journal"


class JournalFeed(LiveCollection[JournalEntry]):
    """Journal entries of one local day, or the whole archive when no day is given."""

    collection_name = JOURNAL_COLLECTION

    def __init__(
        self,
        store: DocumentStore,
        crypto: CryptoAdapter,
        user_id: str,
        clock: SystemClock,
        undo: UndoCoordinator,
        day: date | None = None,
    ) -> None:
        super().__init__(store, crypto, user_id, clock)
        self.undo = undo
        self.day = day

    @property
    def archive_mode(self) -> bool:
        return self.day is None

    def build_query(self) -> Query:
        query = Query(self.collection_path)
        if self.day is not None:
            start, end = day_bounds(self.day, self.clock.tz)
            query = query.where("date", ">=", start).where("date", "<=", end)
        return query.ordered("date", descending=True)

    def admit(self, entry: JournalEntry) -> bool:
        if self.day is None:
            return True
        start, end = day_bounds(self.day, self.clock.tz)
        return start <= entry.date <= end

    def sort_key(self, entry: JournalEntry):
        return -entry.date.timestamp()

    def decode(self, doc: DocumentSnapshot) -> JournalEntry:
        return JournalEntry.from_document(doc.id, doc.data, self.decrypt(doc.data.get("text") or ""))

    def find(self, entry_id: str) -> Optional[JournalEntry]:
        return self._state.find(lambda entry: entry.id == entry_id)

    def _default_moment(self) -> datetime:
        now = self.clock.now()
        if self.day is None or self.day == now.date():
            return now
        return datetime.combine(self.day, now.timetz())

    async def add_entry(self, text: str, when: datetime | None = None) -> Optional[JournalEntry]:
        clean = str(text or "").strip()
        if not clean:
            return None
        if when is not None and when.tzinfo is None:
            when = when.replace(tzinfo=self.clock.tz)
        entry = JournalEntry(id=new_id(), text=clean, date=when or self._default_moment())
        saved = await self.guarded(
            "add journal entry",
            self.store.write(self.doc_path(entry.id), entry.to_fields(self.encrypt(entry.text))),
        )
        return entry if saved else None

    async def update_entry(self, entry_id: str, text: str) -> bool:
        clean = str(text or "").strip()
        if not clean:
            return False
        updated_at = self.clock.now()
        self._patch(
            lambda items: [
                JournalEntry(e.id, clean, e.date, updated_at) if e.id == entry_id else e for e in items
            ]
        )
        return await self.guarded(
            "update journal entry",
            self.store.write(
                self.doc_path(entry_id),
                {"text": self.encrypt(clean), "updatedAt": updated_at},
                merge=True,
            ),
        )

    def delete_entry(self, entry_id: str) -> bool:
        entry = self.find(entry_id)
        if entry is None:
            return False
        path = self.doc_path(entry_id)
        self._patch(lambda items: [e for e in items if e.id != entry_id])
        self.undo.schedule_delete(
            entry_id,
            EntityType.ENTRY,
            entry,
            on_undo=lambda: self._restore(entry),
            on_confirm=lambda: self.spawn("delete journal entry", self.store.delete(path), key=path),
        )
        return True

    def _restore(self, entry: JournalEntry) -> None:
        self._patch(lambda items: [e for e in items if e.id != entry.id] + [entry])
        path = self.doc_path(entry.id)
        self.spawn("restore journal entry", self.store.write(path, entry.to_fields(self.encrypt(entry.text))), key=path)
