"""
Per-Entity Locks

One mutex per entity key (e.g. an account ID or a rule ID). Operations that
touch several entities take all their locks in sorted key order, so two
postings between the same accounts in opposite directions cannot deadlock.
"""

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class EntityLocks:
    """Registry of lazily created per-key locks."""

    def __init__(self):
        self._registry_lock = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, key: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, namespace: str, *ids: Hashable) -> Iterator[None]:
        """
        Hold the locks of every `namespace:id` key for the duration of the block.

        Re-entrant per thread, so a scheduler holding a rule lock can call
        into the Ledger, which takes account locks.
        """
        keys = sorted({f"{namespace}:{entity_id}" for entity_id in ids})
        locks = [self._lock_for(key) for key in keys]
        acquired = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
