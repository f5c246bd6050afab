"""
In-memory correlation cache.

Bounded key/value store with expire-after-write semantics. Holds the
correlation records of pending issuance/presentation requests and the
cached MSAL access token. One instance is owned by the app (app.state.cache)
and shared by every request handler.
"""

import copy
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)


class CacheService:
    """LRU-bounded map whose entries expire a fixed time after their last write."""

    def __init__(
        self,
        maximum_size: int = 100,
        expire_after_write: float = 15 * 60,
        timer: Callable[[], float] = time.monotonic,
    ):
        if maximum_size < 1:
            raise ValueError("maximum_size must be at least 1")
        self.maximum_size = maximum_size
        self.expire_after_write = expire_after_write
        self._timer = timer
        self._lock = threading.Lock()
        # key -> (written_at, value); ordered from least to most recently used
        self._entries: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()

    def _live(self, key: Hashable, now: float) -> tuple[float, Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if now - entry[0] >= self.expire_after_write:
            del self._entries[key]
            return None
        return entry

    def _store(self, key: Hashable, value: Any, now: float) -> None:
        self._entries[key] = (now, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.maximum_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted {evicted}")

    def get(self, key: Hashable) -> Any | None:
        """Return a copy of the value cached under key, or None."""
        with self._lock:
            entry = self._live(key, self._timer())
            if entry is None:
                return None
            self._entries.move_to_end(key)
            return copy.deepcopy(entry[1])

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._store(key, copy.deepcopy(value), self._timer())

    def update(self, key: Hashable, fn: Callable[[Any], Any]) -> Any | None:
        """
        Atomically replace the value under key with fn(value).

        Returns the new value, or None (without writing) when key is absent
        or expired. fn receives a private copy and runs under the cache lock.
        """
        with self._lock:
            now = self._timer()
            entry = self._live(key, now)
            if entry is None:
                return None
            new_value = fn(copy.deepcopy(entry[1]))
            self._store(key, copy.deepcopy(new_value), now)
            return new_value

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            now = self._timer()
            for key in list(self._entries):
                self._live(key, now)
            return len(self._entries)
