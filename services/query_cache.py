"""Short-lived cache for read-mostly listings, invalidated by change events."""
import threading
import time
from typing import Any, Callable, Dict, Hashable, Tuple

from services.change_feed import ANY, ChangeEvent, ChangeFeed


class QueryCache:
    def __init__(
        self,
        ttl_seconds: Callable[[], float],
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 256,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        ttl = self._ttl()
        now = self._clock()
        if ttl > 0:
            with self._lock:
                hit = self._entries.get(key)
                if hit is not None:
                    if now - hit[0] < ttl:
                        return hit[1]
                    del self._entries[key]

        value = loader()
        if ttl > 0:
            with self._lock:
                self._sweep(now, ttl)
                self._entries[key] = (now, value)
        return value

    def _sweep(self, now: float, ttl: float) -> None:
        # keys come from caller-chosen filters, so expired ones must not pile up
        for key in [k for k, (stored_at, _) in self._entries.items() if now - stored_at >= ttl]:
            del self._entries[key]
        while len(self._entries) >= self._max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]

    def invalidate(self, *_args) -> None:
        with self._lock:
            self._entries.clear()

    def bind(self, feed: ChangeFeed, table: str) -> None:
        """Drop every entry whenever `table` changes."""
        def _on_change(event: ChangeEvent) -> None:
            self.invalidate()

        feed.subscribe(table, ANY, _on_change)
