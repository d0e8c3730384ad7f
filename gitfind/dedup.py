"""Concurrency-safe sets used to deduplicate pipeline work."""

from __future__ import annotations

import threading
from typing import FrozenSet, Generic, Hashable, Iterator, Set, TypeVar

T = TypeVar("T", bound=Hashable)


class DedupSet(Generic[T]):
    """A set whose only mutation is an atomic insert-if-absent."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._items: Set[T] = set()
        self._lock = threading.Lock()

    def insert(self, item: T) -> bool:
        """Add ``item`` and return ``True`` if it was not already present."""
        with self._lock:
            if item in self._items:
                return False
            self._items.add(item)
            return True

    def snapshot(self) -> FrozenSet[T]:
        with self._lock:
            return frozenset(self._items)

    def __contains__(self, item: object) -> bool:
        with self._lock:
            return item in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"DedupSet(name={self.name!r}, size={len(self)})"


__all__ = ["DedupSet"]
