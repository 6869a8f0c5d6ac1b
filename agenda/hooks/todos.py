from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from agenda.clock import SystemClock, day_bounds, epoch_millis, local_day, local_midnight
from agenda.crypto import CryptoAdapter
from agenda.hooks.base import LiveCollection, new_id
from agenda.models import EntityType, Todo
from agenda.store.base import DocumentSnapshot, DocumentStore, Query
from agenda.undo import UndoCoordinator

logger = logging.getLogger(__name__)

TODOS_COLLECTION = "todos"


def todo_sort_key(todo: Todo):
    order = todo.order if todo.order is not None else float("inf")
    return (order, todo.created_at.timestamp())


class TodoRecords(LiveCollection[Todo]):
    """Decoding and the date moves shared by every task view."""

    collection_name = TODOS_COLLECTION

    def decode(self, doc: DocumentSnapshot) -> Todo:
        return Todo.from_document(doc.id, doc.data, self.decrypt(doc.data.get("text") or ""))

    def find(self, todo_id: str) -> Optional[Todo]:
        return self._state.find(lambda todo: todo.id == todo_id)

    def _reschedule_fields(self, day: date) -> Dict[str, Any]:
        return {
            "createdAt": local_midnight(day, self.clock.tz),
            "order": epoch_millis(self.clock.now()),
        }

    async def reschedule_todo(self, todo_id: str, day: date) -> bool:
        fields = self._reschedule_fields(day)
        self._patch(
            lambda items: [
                todo.with_changes(created_at=fields["createdAt"], order=fields["order"]) if todo.id == todo_id else todo
                for todo in items
            ]
        )
        return await self.guarded("reschedule todo", self.store.write(self.doc_path(todo_id), fields, merge=True))


class TodoList(TodoRecords):
    """Tasks of one day, or the rolling "unfiltered" list when no day is given.

    The rolling list shows every task of today, incomplete tasks left over from
    earlier days, and nothing dated in the future.
    """

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

    def build_query(self) -> Query:
        query = Query(self.collection_path)
        if self.day is not None:
            start, end = day_bounds(self.day, self.clock.tz)
            query = query.where("createdAt", ">=", start).where("createdAt", "<=", end)
        return query.ordered("createdAt")

    def admit(self, todo: Todo) -> bool:
        todo_day = local_day(todo.created_at, self.clock.tz)
        if self.day is not None:
            return todo_day == self.day
        today = self.clock.today()
        if todo_day > today:
            return False
        if todo_day < today and todo.completed:
            return False
        return True

    def sort_key(self, todo: Todo):
        return todo_sort_key(todo)

    async def add_todo(self, text: str, category: str = "general", day: date | None = None) -> Optional[Todo]:
        clean = str(text or "").strip()
        if not clean:
            return None
        now = self.clock.now()
        target_day = day or self.day
        created_at: datetime = now
        if target_day is not None and target_day != now.date():
            created_at = local_midnight(target_day, self.clock.tz)
        todo = Todo(
            id=new_id(),
            text=clean,
            created_at=created_at,
            category=str(category or "general"),
            order=epoch_millis(now),
        )
        saved = await self.guarded(
            "add todo",
            self.store.write(self.doc_path(todo.id), todo.to_fields(self.encrypt(todo.text))),
        )
        return todo if saved else None

    async def toggle_todo(self, todo_id: str) -> Optional[bool]:
        todo = self.find(todo_id)
        if todo is None:
            logger.debug("Toggle ignored for unknown todo %s", todo_id)
            return None
        completed = not todo.completed
        self._patch(lambda items: [t.with_changes(completed=completed) if t.id == todo_id else t for t in items])
        await self.guarded("toggle todo", self.store.write(self.doc_path(todo_id), {"completed": completed}, merge=True))
        return completed

    async def update_todo(self, todo_id: str, text: str | None = None, category: str | None = None) -> bool:
        changes: Dict[str, Any] = {}
        fields: Dict[str, Any] = {}
        if text is not None:
            clean = str(text).strip()
            if not clean:
                return False
            changes["text"] = clean
            fields["text"] = self.encrypt(clean)
        if category is not None:
            changes["category"] = str(category) or "general"
            fields["category"] = changes["category"]
        if not fields:
            return False
        self._patch(lambda items: [t.with_changes(**changes) if t.id == todo_id else t for t in items])
        return await self.guarded("update todo", self.store.write(self.doc_path(todo_id), fields, merge=True))

    def delete_todo(self, todo_id: str) -> bool:
        todo = self.find(todo_id)
        if todo is None:
            return False
        path = self.doc_path(todo_id)
        self._patch(lambda items: [t for t in items if t.id != todo_id])
        self.undo.schedule_delete(
            todo_id,
            EntityType.TODO,
            todo,
            on_undo=lambda: self._restore(todo),
            on_confirm=lambda: self.spawn("delete todo", self.store.delete(path), key=path),
        )
        return True

    def _restore(self, todo: Todo) -> None:
        self._patch(lambda items: [t for t in items if t.id != todo.id] + [todo])
        path = self.doc_path(todo.id)
        self.spawn("restore todo", self.store.write(path, todo.to_fields(self.encrypt(todo.text))), key=path)

    async def reorder_todos(self, ordered: Sequence[Todo]) -> List[Todo]:
        """Give each task its index as ``order`` and commit all of them in one batch."""
        reordered = [todo.with_changes(order=index) for index, todo in enumerate(ordered)]
        if not reordered:
            return []
        by_id = {todo.id: todo for todo in reordered}
        self._patch(lambda items: [by_id.get(t.id, t) for t in items])
        writes = [(self.doc_path(todo.id), {"order": todo.order}) for todo in reordered]
        await self.guarded("reorder todos", self.store.batch_write(writes))
        return reordered
