"""Single-slot undo for destructive operations.

The store delete runs as soon as a deletion is scheduled. What the coordinator keeps
for five seconds is the inverse: a callback that writes the snapshot back. Only one
deletion can be undone at a time; scheduling another one finalizes the previous.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from agenda.models import EntityType

logger = logging.getLogger(__name__)

UNDO_WINDOW_SECONDS = 5.0


@dataclass
class PendingDeletion:
    id: str
    entity_type: EntityType
    snapshot: Any
    on_undo: Callable[[], Any]
    on_confirm: Callable[[], Any]
    timestamp: float = field(default_factory=lambda: time.time() * 1000)
    timer_handle: Any = None


def _invoke(callback: Callable[[], Any], what: str) -> None:
    try:
        callback()
    except Exception as exc:
        logger.exception("Undo %s callback failed: %s", what, exc)


class UndoCoordinator:
    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._pending: Optional[PendingDeletion] = None

    @property
    def pending(self) -> Optional[PendingDeletion]:
        return self._pending

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def schedule_delete(
        self,
        item_id: str,
        entity_type: EntityType | str,
        snapshot: Any,
        on_undo: Callable[[], Any],
        on_confirm: Callable[[], Any],
    ) -> PendingDeletion:
        previous = self._pending
        if previous is not None:
            self._cancel_timer(previous)
            self._pending = None
            if previous.id != item_id:
                logger.debug("Finalizing pending %s %s", previous.entity_type.value, previous.id)
                _invoke(previous.on_confirm, "confirm")

        _invoke(on_confirm, "confirm")

        entry = PendingDeletion(
            id=item_id,
            entity_type=EntityType(entity_type),
            snapshot=snapshot,
            on_undo=on_undo,
            on_confirm=on_confirm,
        )
        entry.timer_handle = self._event_loop().call_later(UNDO_WINDOW_SECONDS, self._expire, entry)
        self._pending = entry
        return entry

    def _expire(self, entry: PendingDeletion) -> None:
        # A replaced entry must not clear the newer one.
        if self._pending is entry:
            logger.debug("Undo window closed for %s %s", entry.entity_type.value, entry.id)
            self._pending = None

    def undo(self) -> bool:
        entry = self._pending
        if entry is None:
            return False
        self._cancel_timer(entry)
        self._pending = None
        _invoke(entry.on_undo, "undo")
        return True

    def dismiss(self) -> bool:
        entry = self._pending
        if entry is None:
            return False
        self._cancel_timer(entry)
        self._pending = None
        return True

    @staticmethod
    def _cancel_timer(entry: PendingDeletion) -> None:
        if entry.timer_handle is not None:
            entry.timer_handle.cancel()
            entry.timer_handle = None
