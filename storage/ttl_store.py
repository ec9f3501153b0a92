"""Time-scoped key-value store injected where short-lived caching is needed."""
from __future__ import annotations

import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLStore:
    """Entries expire ``ttl_s`` seconds after they are written.

    Expired entries are purged lazily on access and on every write. A TTL
    of zero disables storage entirely.
    """

    def __init__(self, ttl_s: float = 600.0, *, max_entries: int = 512, clock: Callable[[], float] = time.monotonic):
        self.ttl_s = max(0.0, float(ttl_s))
        self.max_entries = max(1, int(max_entries))
        self._clock = clock
        self._items: Dict[Hashable, Tuple[float, Any]] = {}

    def __len__(self) -> int:
        self._purge()
        return len(self._items)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def _purge(self) -> None:
        now = self._clock()
        for key in [key for key, (expires, _) in self._items.items() if expires <= now]:
            del self._items[key]

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        entry = self._items.get(key)
        if entry is None:
            return default
        expires, value = entry
        if expires <= self._clock():
            del self._items[key]
            return default
        return value

    def set(self, key: Hashable, value: Any) -> None:
        if self.ttl_s <= 0:
            return
        self._purge()
        if key not in self._items and len(self._items) >= self.max_entries:
            oldest = min(self._items, key=lambda item: self._items[item][0])
            del self._items[oldest]
        self._items[key] = (self._clock() + self.ttl_s, value)

    def pop(self, key: Hashable, default: Optional[Any] = None) -> Any:
        value = self.get(key, default)
        self._items.pop(key, None)
        return value

    def clear(self) -> None:
        self._items.clear()


__all__ = ["TTLStore"]
