from __future__ import annotations

from collections import OrderedDict
from datetime import date
from typing import Dict, List

from agenda.clock import local_day
from agenda.hooks.todos import TodoRecords
from agenda.models import Todo
from agenda.store.base import Query


class IncompleteTodos(TodoRecords):
    """Every unfinished task across all days, newest first, for catching up on backlog."""

    def build_query(self) -> Query:
        return Query(self.collection_path).where("completed", "==", False).ordered("createdAt", descending=True)

    def admit(self, todo: Todo) -> bool:
        return not todo.completed

    def sort_key(self, todo: Todo):
        return -todo.created_at.timestamp()

    def grouped(self) -> "OrderedDict[date, List[Todo]]":
        """Tasks keyed by local day, oldest day first."""
        groups: Dict[date, List[Todo]] = {}
        for todo in self.items:
            groups.setdefault(local_day(todo.created_at, self.clock.tz), []).append(todo)
        return OrderedDict(sorted(groups.items()))

    async def toggle_todo(self, todo_id: str) -> bool:
        todo = self.find(todo_id)
        if todo is None:
            return False
        completed = not todo.completed
        self._patch(lambda items: [t.with_changes(completed=completed) if t.id == todo_id else t for t in items])
        return await self.guarded(
            "toggle todo", self.store.write(self.doc_path(todo_id), {"completed": completed}, merge=True)
        )

    async def delete_todo(self, todo_id: str) -> bool:
        self._patch(lambda items: [t for t in items if t.id != todo_id])
        return await self.guarded("delete todo", self.store.delete(self.doc_path(todo_id)))
