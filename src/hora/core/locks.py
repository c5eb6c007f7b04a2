# src/hora/core/locks.py

"""Per-key locking for the in-memory stores."""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLocks:
    """Manages one threading.Lock per key so unrelated keys never contend.

    The registry itself is guarded by a short-lived lock that is only held
    while looking up / releasing the per-key entry, never while the caller's
    critical section runs. An entry lives only while someone holds or waits
    for it, so the registry does not grow with every key ever seen.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        # key -> [lock, number of holders + waiters]
        self._locks: dict[Hashable, list] = {}

    def _acquire_entry(self, key: Hashable) -> threading.Lock:
        with self._registry_lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _release_entry(self, key: Hashable) -> None:
        with self._registry_lock:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._acquire_entry(key)
        try:
            with lock:
                yield
        finally:
            self._release_entry(key)
