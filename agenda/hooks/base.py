from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Set, Tuple, TypeVar
from uuid import uuid4

from agenda.clock import SystemClock
from agenda.crypto import CryptoAdapter
from agenda.state import ListState, apply_optimistic, replace_with_snapshot
from agenda.store.base import DocumentSnapshot, DocumentStore, Query, join_path

logger = logging.getLogger(__name__)

T = TypeVar("T")


def new_id() -> str:
    return uuid4().hex


class LiveCollection(Generic[T]):
    """A live, decrypted, user-scoped view of one collection.

    Subclasses define the query, how a stored document becomes a record, and which
    records the view admits. Writes are best effort: failures are logged here and
    never reach the caller.
    """

    collection_name = ""

    def __init__(self, store: DocumentStore, crypto: CryptoAdapter, user_id: str, clock: SystemClock) -> None:
        self.store = store
        self.crypto = crypto
        self.user_id = user_id
        self.clock = clock
        self._state: ListState[T] = ListState()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._background: Set[asyncio.Task] = set()
        self._last_by_key: Dict[str, asyncio.Task] = {}

    # -- scoping ------------------------------------------------------------

    @property
    def collection_path(self) -> str:
        return join_path("users", self.user_id, self.collection_name)

    def doc_path(self, doc_id: str) -> str:
        return join_path(self.collection_path, doc_id)

    # -- hooks for subclasses -----------------------------------------------

    def build_query(self) -> Query:
        raise NotImplementedError

    def decode(self, doc: DocumentSnapshot) -> T:
        raise NotImplementedError

    def admit(self, item: T) -> bool:
        return True

    # -- lifecycle ----------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._unsubscribe is not None

    async def open(self):
        if self._unsubscribe is None:
            self._unsubscribe = await self.store.subscribe(self.build_query(), self._on_snapshot)
        return self

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def __aenter__(self):
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        await self.drain()
        self.close()

    # -- state --------------------------------------------------------------

    @property
    def state(self) -> ListState[T]:
        return self._state

    @property
    def items(self) -> Tuple[T, ...]:
        return self._state.items

    def _sorter(self) -> Optional[Callable[[T], Any]]:
        # Views without a sort_key keep the store order.
        return getattr(self, "sort_key", None)

    def _on_snapshot(self, docs: List[DocumentSnapshot]) -> None:
        records = []
        for doc in docs:
            try:
                records.append(self.decode(doc))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed document %s: %s", doc.path, exc)
        self._state = replace_with_snapshot(self._state, records, self.admit, self._sorter())

    def _patch(self, patch: Callable[[list], list]) -> None:
        self._state = apply_optimistic(self._state, patch, self.admit, self._sorter())

    # -- encryption boundary ------------------------------------------------

    def encrypt(self, text):
        return self.crypto.encrypt(text, self.user_id)

    def decrypt(self, text):
        return self.crypto.decrypt(text, self.user_id)

    # -- writes -------------------------------------------------------------

    async def guarded(self, action: str, operation: Awaitable[Any]) -> bool:
        try:
            await operation
            return True
        except Exception as exc:
            logger.exception("Failed to %s: %s", action, exc)
            return False

    def spawn(self, action: str, operation: Awaitable[Any], key: str | None = None) -> asyncio.Task:
        """Run a write in the background; writes sharing ``key`` apply in issue order."""
        previous = self._last_by_key.get(key) if key is not None else None

        async def run() -> bool:
            if previous is not None and not previous.done():
                await asyncio.wait([previous])
            return await self.guarded(action, operation)

        task = asyncio.ensure_future(run())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        if key is not None:
            self._last_by_key[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        return task

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._last_by_key.get(key) is task:
            del self._last_by_key[key]

    async def drain(self) -> None:
        while self._background:
            await asyncio.gather(*list(self._background))
