"""Shared request cache with TTL freshness and in-flight de-duplication."""

from clinic_console.cache.coordinator import FetchCoordinator, SharedCache, get_shared_cache, reset_shared_cache
from clinic_console.cache.store import LOOKUP_TTL_SECONDS, MISS, CacheEntry, CacheStore, epoch_millis

__all__ = [
    "CacheEntry",
    "CacheStore",
    "FetchCoordinator",
    "LOOKUP_TTL_SECONDS",
    "MISS",
    "SharedCache",
    "epoch_millis",
    "get_shared_cache",
    "reset_shared_cache",
]
