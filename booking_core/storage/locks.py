"""Keyed mutual exclusion for check-and-commit sections."""

import logging
import threading
from contextlib import contextmanager
from typing import Hashable, Iterator

logger = logging.getLogger(__name__)


class KeyedLocks:
    """Hands out one lock per key, created on first use."""

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._mutex:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            logger.debug("Lock acquired: %s", key)
            yield
