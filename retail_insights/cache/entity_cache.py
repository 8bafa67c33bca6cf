"""
retail_insights/cache/entity_cache.py

Keyed, memoizing cache with an independent state slot per key.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, TypeVar

from retail_insights.errors import describe_error

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class CacheView(Generic[V]):
    """
    Snapshot of one cache slot handed to callers.
    """

    data: V | None = None
    loading: bool = False
    error: str | None = None
    stale: bool = False

    @property
    def has_data(self) -> bool:
        return self.data is not None


@dataclass
class CacheSlot(Generic[V]):
    data: V | None = None
    loading: bool = False
    error: str | None = None
    stale: bool = False
    loaded: bool = False

    def view(self) -> CacheView[V]:
        return CacheView(data=self.data, loading=self.loading, error=self.error, stale=self.stale)


class EntityCache(Generic[K, V]):
    """
    Memoizes ``fetcher(key)`` results per key.

    The first access for a key triggers a fetch; later accesses return the
    memoized slot until it is marked stale or refreshed. A failed fetch
    records its error on that key's slot only and keeps any previous data.
    Nothing expires on its own.
    """

    def __init__(self, fetcher: Callable[[K], V], *, name: str = "entity") -> None:
        self._fetcher = fetcher
        self._name = name
        self._lock = threading.Lock()
        self._slots: dict[K, CacheSlot[V]] = {}

    def get_for_id(self, key: K) -> CacheView[V]:
        with self._lock:
            slot = self._slots.get(key)
            if slot is not None and (slot.loading or (slot.loaded and not slot.stale)):
                return slot.view()
            self._begin_fetch(key)
        return self._run_fetch(key)

    def refresh(self, key: K) -> CacheView[V]:
        """
        Fetch ``key`` again regardless of its current state.
        """

        with self._lock:
            slot = self._slots.get(key)
            if slot is not None and slot.loading:
                return slot.view()
            self._begin_fetch(key)
        return self._run_fetch(key)

    def peek(self, key: K) -> CacheView[V]:
        """
        Return the slot without fetching; an unknown key gives an empty view.
        """

        with self._lock:
            slot = self._slots.get(key)
            return slot.view() if slot is not None else CacheView()

    def mark_stale(self, key: K) -> None:
        with self._lock:
            slot = self._slots.get(key)
            if slot is not None:
                slot.stale = True

    def merge(self, key: K, value: V) -> CacheView[V]:
        """
        Store a value confirmed by the backend, replacing the slot data.
        """

        with self._lock:
            slot = self._slots.setdefault(key, CacheSlot())
            slot.data = value
            slot.error = None
            slot.stale = False
            slot.loaded = True
            return slot.view()

    def update(self, key: K, fn: Callable[[V], V]) -> CacheView[V] | None:
        """
        Apply ``fn`` to the cached value of ``key``; no-op when nothing is cached.
        """

        with self._lock:
            slot = self._slots.get(key)
            if slot is None or slot.data is None:
                return None
            slot.data = fn(slot.data)
            return slot.view()

    def update_all(self, fn: Callable[[V], V]) -> None:
        with self._lock:
            for slot in self._slots.values():
                if slot.data is not None:
                    slot.data = fn(slot.data)

    def evict(self, key: K) -> None:
        with self._lock:
            self._slots.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._slots.clear()

    def keys(self) -> list[K]:
        with self._lock:
            return list(self._slots)

    def _begin_fetch(self, key: K) -> CacheSlot[V]:
        slot = self._slots.setdefault(key, CacheSlot())
        slot.loading = True
        slot.error = None
        return slot

    def _run_fetch(self, key: K) -> CacheView[V]:
        try:
            value = self._fetcher(key)
        except Exception as exc:
            processed = describe_error(exc)
            logger.warning("Cache fetch failed cache=%s key=%s error=%s", self._name, key, processed.message)
            with self._lock:
                slot = self._slots.setdefault(key, CacheSlot())
                slot.loading = False
                slot.error = processed.user_message
                return slot.view()

        with self._lock:
            slot = self._slots.setdefault(key, CacheSlot())
            slot.data = value
            slot.loading = False
            slot.error = None
            slot.stale = False
            slot.loaded = True
            return slot.view()
