"""Per-user wiring of the store, the crypto adapter and the undo coordinator.

Each user gets one ``Workspace`` holding its own ``UndoCoordinator``, so a pending
deletion of one user can never be confirmed or undone from another user's session.
"""
from __future__ import annotations

import logging
import re
from collections import OrderedDict
from datetime import date
from pathlib import Path
from typing import Dict, Optional, Tuple

from agenda.clock import SystemClock
from agenda.crypto import CryptoAdapter
from agenda.db import get_engine, get_sessionmaker
from agenda.db_init import init_db
from agenda.focus import DailyFocus
from agenda.hooks.base import LiveCollection
from agenda.hooks.habits import HabitTracker
from agenda.hooks.incomplete import IncompleteTodos
from agenda.hooks.journal import JournalFeed
from agenda.hooks.todos import TodoList
from agenda.preferences import LocalStateFile, PreferencesSync
from agenda.settings import Settings, get_settings
from agenda.store.base import DocumentStore
from agenda.store.memory import MemoryDocumentStore
from agenda.store.sql import SqlDocumentStore
from agenda.undo import UndoCoordinator

logger = logging.getLogger(__name__)

# Views for explicit days or ranges kept open per workspace, least recently used closed first.
MAX_DAY_VIEWS = 8


def local_state_path_for(base: str | Path, user_id: str) -> Path:
    base = Path(base)
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", user_id)
    return base.with_name(f"{base.stem}-{safe}{base.suffix or '.json'}")


class Workspace:
    def __init__(
        self,
        user_id: str,
        store: DocumentStore,
        crypto: CryptoAdapter,
        clock: SystemClock,
        local: LocalStateFile,
        undo: UndoCoordinator | None = None,
    ) -> None:
        self.user_id = user_id
        self.store = store
        self.crypto = crypto
        self.clock = clock
        self.undo = undo or UndoCoordinator()
        self.preferences = PreferencesSync(local, store, user_id)
        self.focus = DailyFocus(local, clock)
        self._views: "OrderedDict[Tuple, LiveCollection]" = OrderedDict()
        self._synced = False

    async def _view(self, key: Tuple, factory) -> LiveCollection:
        view = self._views.get(key)
        if view is None:
            view = factory()
            self._views[key] = view
        self._views.move_to_end(key)
        if not view.is_open:
            await view.open()
        await self._evict_stale_views()
        return view

    def _pinned(self, key: Tuple) -> bool:
        return key in {("todos", None), ("incomplete",), ("journal", None), ("habits", self.clock.today(), None)}

    async def _evict_stale_views(self) -> None:
        unpinned = [key for key in self._views if not self._pinned(key)]
        for key in unpinned[: max(0, len(unpinned) - MAX_DAY_VIEWS)]:
            view = self._views.pop(key, None)
            if view is None:
                continue
            await view.drain()
            view.close()
            logger.debug("Closed idle view %s for %s", key, self.user_id)

    async def todos(self, day: date | None = None) -> TodoList:
        return await self._view(
            ("todos", day),
            lambda: TodoList(self.store, self.crypto, self.user_id, self.clock, self.undo, day=day),
        )

    async def incomplete_todos(self) -> IncompleteTodos:
        return await self._view(
            ("incomplete",),
            lambda: IncompleteTodos(self.store, self.crypto, self.user_id, self.clock),
        )

    async def journal(self, day: date | None = None) -> JournalFeed:
        return await self._view(
            ("journal", day),
            lambda: JournalFeed(self.store, self.crypto, self.user_id, self.clock, self.undo, day=day),
        )

    async def habits(self, day: date | None = None, log_range: Tuple[date, date] | None = None) -> HabitTracker:
        day = day or self.clock.today()
        return await self._view(
            ("habits", day, log_range),
            lambda: HabitTracker(self.store, self.crypto, self.user_id, self.clock, day=day, log_range=log_range),
        )

    async def sync_preferences(self) -> Dict[str, str]:
        if not self._synced:
            await self.preferences.sync_on_login()
            self._synced = True
        return self.preferences.preferences

    async def close(self) -> None:
        self.undo.dismiss()
        for view in list(self._views.values()):
            await view.drain()
            view.close()
        self._views.clear()


class WorkspaceRegistry:
    """Creates workspaces on first use and closes them together with the store."""

    def __init__(
        self,
        store: DocumentStore,
        crypto: CryptoAdapter,
        clock: SystemClock,
        local_state_path: str | Path,
    ) -> None:
        self.store = store
        self.crypto = crypto
        self.clock = clock
        self.local_state_path = Path(local_state_path)
        self._workspaces: Dict[str, Workspace] = {}

    @classmethod
    async def from_settings(cls, settings: Optional[Settings] = None) -> "WorkspaceRegistry":
        settings = settings or get_settings()
        backend = (settings.store_backend or "sql").strip().lower()
        if backend == "memory":
            store: DocumentStore = MemoryDocumentStore()
        elif backend == "sql":
            await init_db(get_engine())
            store = SqlDocumentStore(get_sessionmaker())
        else:
            raise ValueError(f"Unknown AGENDA_STORE backend: {settings.store_backend!r}")
        logger.info("Using %s document store", backend)
        return cls(
            store=store,
            crypto=CryptoAdapter(settings.app_secret),
            clock=SystemClock(settings.timezone),
            local_state_path=settings.local_state_path,
        )

    def get(self, user_id: str) -> Workspace:
        workspace = self._workspaces.get(user_id)
        if workspace is None:
            workspace = Workspace(
                user_id,
                self.store,
                self.crypto,
                self.clock,
                LocalStateFile(local_state_path_for(self.local_state_path, user_id)),
            )
            self._workspaces[user_id] = workspace
        return workspace

    async def close(self) -> None:
        for workspace in list(self._workspaces.values()):
            await workspace.close()
        self._workspaces.clear()
        await self.store.close()
