import logging
import time
from typing import Callable, Hashable, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """Process-local memo with a fixed time-to-live.

    Two callers racing past expiry may both recompute; everything cached here
    is a pure function of its key, so that only costs redundant work.
    """

    def __init__(
        self, ttl_secs: float, *, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl_secs = ttl_secs
        self._clock = clock
        self._entries: dict[Hashable, tuple[object, float]] = {}

    def get(self, key: Hashable, default: Optional[object] = None) -> Optional[object]:
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            return default
        value, stored_at = entry
        if self._clock() - stored_at >= self.ttl_secs:
            self._entries.pop(key, None)
            logger.debug(f"cache_expired: key={key!r}")
            return default
        return value

    def set(self, key: Hashable, value: object) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries[key] = (value, now)

    def _sweep(self, now: float) -> None:
        # Keys that are never read again would otherwise stay forever.
        expired = [
            key
            for key, (_, stored_at) in self._entries.items()
            if now - stored_at >= self.ttl_secs
        ]
        for key in expired:
            del self._entries[key]

    def get_or_compute(self, key: Hashable, compute: Callable[[], object]) -> object:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            value = compute()
            self.set(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def discard(self, predicate: Callable[[Hashable], bool]) -> int:
        stale = [key for key in list(self._entries) if predicate(key)]
        for key in stale:
            self._entries.pop(key, None)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
