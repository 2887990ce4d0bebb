from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class NamedLocks:
    """Process-local advisory locks keyed by an arbitrary name.

    Used to serialise search-or-create flows for the same document name.
    Offers no protection across processes.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, name: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        lock = self._lock_for(name)
        with lock:
            yield
