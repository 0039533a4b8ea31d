"""Keyed in-process locks for single-writer critical sections."""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class KeyedLocks:
    """
    One lock per key, created on first use.

    Work on different keys never contends; work on the same key is
    serialized. Acquisition is bounded by ``timeout`` so no caller waits
    indefinitely.
    """

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())

        if not lock.acquire(timeout=self.timeout):
            raise TimeoutError(f"Timed out waiting for lock on {key!r}")
        try:
            yield
        finally:
            lock.release()
