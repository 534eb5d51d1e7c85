from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Protocol

from shipwright.core.clock import Clock, utc_now


class DedupCache(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self) -> None: ...


class InMemoryDedupCache:
    """Process-local, bounded map of ``<logical-key>@<utc-day>`` to timestamps.

    Not shared across processes; the durable store stays authoritative.
    """

    def __init__(self, max_entries: int = 512, clock: Clock | None = None) -> None:
        self.max_entries = max(1, int(max_entries))
        self.clock = clock or utc_now
        self._data: OrderedDict[str, str] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            self._sweep_locked()

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def _sweep_locked(self) -> int:
        today = self.clock().date().isoformat()
        stale = [key for key in self._data if not key.endswith(f"@{today}")]
        for key in stale:
            del self._data[key]
        removed = len(stale)
        while len(self._data) > self.max_entries:
            self._data.popitem(last=False)
            removed += 1
        return removed
