from __future__ import annotations
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, Tuple
import threading


class KeyedLock:
    """
    Registry of per-key mutexes for this process.

    Two callers holding the same key run one after the other; different
    keys never contend. Entries are dropped once no caller holds or waits
    for them, so the registry only grows with in-flight keys.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> (lock, number of holders + waiters)
        self._locks: Dict[Hashable, Tuple[threading.Lock, int]] = {}

    def _acquire_entry(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
            return lock

    def _release_entry(self, key: Hashable) -> None:
        with self._guard:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._acquire_entry(key)
        try:
            with lock:
                yield
        finally:
            self._release_entry(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
