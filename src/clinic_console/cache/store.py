from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], int]
Subscriber = Callable[[Hashable, Any], None]

LOOKUP_TTL_SECONDS = 10 * 60


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class _Miss:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Any = _Miss()


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    value: T
    timestamp: int


class CacheStore:
    """
    Key -> (value, timestamp) slots with a time-to-live freshness test.

    Entries are only ever superseded by a later `set`; nothing is evicted. Stale entries
    stay readable through `peek` so callers can fall back to them when a refresh fails.
    """

    def __init__(self, *, ttl_seconds: float = LOOKUP_TTL_SECONDS, clock: Clock = epoch_millis) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got: {ttl_seconds}")
        self._ttl_millis = int(ttl_seconds * 1000)
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry[Any]] = {}
        self._subscribers: Dict[Hashable, list[Subscriber]] = {}

    @property
    def ttl_millis(self) -> int:
        return self._ttl_millis

    def is_fresh(self, entry: CacheEntry[Any]) -> bool:
        return self._clock() - entry.timestamp < self._ttl_millis

    def get(self, key: Hashable) -> Any:
        """Return the cached value if it is still fresh, otherwise `MISS`."""
        entry = self._entries.get(key)
        if entry is None or not self.is_fresh(entry):
            return MISS
        return entry.value

    def peek(self, key: Hashable) -> Optional[CacheEntry[Any]]:
        return self._entries.get(key)

    def set(self, key: Hashable, value: Any) -> CacheEntry[Any]:
        entry = CacheEntry(value=value, timestamp=self._clock())
        self._entries[key] = entry
        self._notify(key, value)
        return entry

    def subscribe(self, key: Hashable, callback: Subscriber) -> Callable[[], None]:
        """Call `callback(key, value)` after every `set` for `key`. Returns an unsubscribe function."""
        self._subscribers.setdefault(key, []).append(callback)

        def _unsubscribe() -> None:
            callbacks = self._subscribers.get(key)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._subscribers[key]

        return _unsubscribe

    def _notify(self, key: Hashable, value: Any) -> None:
        for callback in list(self._subscribers.get(key, ())):
            try:
                callback(key, value)
            except Exception:
                logger.exception("Cache subscriber failed. key=%s", key)
