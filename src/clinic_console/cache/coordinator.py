from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, TypeVar

from clinic_console.cache.store import LOOKUP_TTL_SECONDS, MISS, CacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Loader = Callable[[], Awaitable[T]]


class FetchCoordinator:
    """
    Allows at most one outstanding load per cache key.

    The first caller for a key owns the load. Callers arriving while it is outstanding
    await the same future and see the same result or the same exception. A key is
    marked in flight before the loader starts and cleared once it settles.
    """

    def __init__(self, store: CacheStore) -> None:
        self._store = store
        self._in_flight: Dict[Hashable, asyncio.Future[Any]] = {}

    @property
    def store(self) -> CacheStore:
        return self._store

    def is_in_flight(self, key: Hashable) -> bool:
        return key in self._in_flight

    async def fetch_or_reuse(self, key: Hashable, loader: Loader[T]) -> T:
        cached = self._store.get(key)
        if cached is not MISS:
            logger.debug("Serving fresh cache entry. key=%s", key)
            return cached

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight fetch. key=%s", key)
            return await asyncio.shield(pending)

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        logger.debug("Fetch started. key=%s", key)
        try:
            value = await loader()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark as retrieved so an unjoined failure is not reported as unhandled.
            future.exception()
            raise
        else:
            self._store.set(key, value)
            future.set_result(value)
            logger.debug("Fetch completed. key=%s", key)
            return value
        finally:
            self._in_flight.pop(key, None)


@dataclass(frozen=True, slots=True)
class SharedCache:
    store: CacheStore
    coordinator: FetchCoordinator


_shared: Optional[SharedCache] = None


def get_shared_cache(ttl_seconds: float = LOOKUP_TTL_SECONDS) -> SharedCache:
    """
    Return the process-wide store/coordinator pair, creating it on first use.

    `ttl_seconds` only applies to the call that creates the pair.
    """
    global _shared
    if _shared is None:
        store = CacheStore(ttl_seconds=ttl_seconds)
        _shared = SharedCache(store=store, coordinator=FetchCoordinator(store))
    return _shared


def reset_shared_cache() -> None:
    global _shared
    _shared = None
