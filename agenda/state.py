"""List state for live collections.

Two transitions only: an optimistic patch applied right after a local intent, and the
authoritative snapshot pushed by the store, which replaces the whole list. Because a
snapshot never merges with what came before, optimistic edits and the store converge as
soon as the write's own echo arrives.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ListState(Generic[T]):
    items: Tuple[T, ...] = ()
    loaded: bool = False
    revision: int = 0

    def find(self, predicate: Callable[[T], bool]) -> Optional[T]:
        for item in self.items:
            if predicate(item):
                return item
        return None


def _arrange(
    items: Iterable[T],
    admit: Optional[Callable[[T], bool]],
    sort_key: Optional[Callable[[T], object]],
) -> Tuple[T, ...]:
    kept = [item for item in items if admit is None or admit(item)]
    if sort_key is not None:
        kept.sort(key=sort_key)
    return tuple(kept)


def replace_with_snapshot(
    state: ListState[T],
    items: Iterable[T],
    admit: Optional[Callable[[T], bool]] = None,
    sort_key: Optional[Callable[[T], object]] = None,
) -> ListState[T]:
    return ListState(items=_arrange(items, admit, sort_key), loaded=True, revision=state.revision + 1)


def apply_optimistic(
    state: ListState[T],
    patch: Callable[[list], list],
    admit: Optional[Callable[[T], bool]] = None,
    sort_key: Optional[Callable[[T], object]] = None,
) -> ListState[T]:
    patched = patch(list(state.items))
    return ListState(items=_arrange(patched, admit, sort_key), loaded=state.loaded, revision=state.revision + 1)
