"""Keyed lock registry.

Hands out one re-entrant lock per key (message id, identity) so that
read-modify-write sequences on the same key are serialized while work on
other keys proceeds in parallel. Entries are reference counted and dropped
once no thread holds or waits on them.

API:
- KeyedLock.hold(key) -> context manager
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, List


class KeyedLock:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, List] = {}  # key -> [RLock, refcount]

    @contextmanager
    def hold(self, key: Hashable):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)

    def __len__(self):
        with self._guard:
            return len(self._locks)
