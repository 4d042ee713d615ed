from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Generic, Hashable, Mapping, Optional, TypeVar

from clinic_console.cache.coordinator import FetchCoordinator
from clinic_console.cache.store import MISS

logger = logging.getLogger(__name__)

T = TypeVar("T")

ListLoader = Callable[[Mapping[str, Any]], Awaitable[list[T]]]
ChangeListener = Callable[[list[T]], None]


class ListHook(Generic[T]):
    """
    Reusable accessor for one lookup list.

    With a `coordinator` and `cache_key` the list is served from the shared cache while
    fresh and loaded at most once concurrently per key. Without them every `load` goes
    to the network. State writes are guarded twice: by a per-accessor generation number,
    so a slow response cannot overwrite the result of a newer `load`, and by a liveness
    flag cleared in `close`.
    """

    def __init__(
        self,
        *,
        name: str,
        loader: ListLoader[T],
        coordinator: Optional[FetchCoordinator] = None,
        cache_key: Optional[Hashable] = None,
        clear_on_error: bool = False,
    ) -> None:
        if (coordinator is None) != (cache_key is None):
            raise ValueError("coordinator and cache_key must be given together")
        self._name = name
        self._loader = loader
        self._coordinator = coordinator
        self._cache_key = cache_key
        self._clear_on_error = clear_on_error

        self._items: list[T] = []
        self._is_loading = False
        self._generation = 0
        self._alive = True
        self._listeners: list[ChangeListener[T]] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

        if coordinator is not None:
            cached = coordinator.store.get(cache_key)
            if cached is not MISS:
                self._items = list(cached)
            self._unsubscribe = coordinator.store.subscribe(cache_key, self._on_cache_updated)

    @property
    def name(self) -> str:
        return self._name

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_cached(self) -> bool:
        return self._coordinator is not None

    @property
    def is_alive(self) -> bool:
        return self._alive

    def on_change(self, listener: ChangeListener[T]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def close(self) -> None:
        """Stop applying results. Requests already in flight still complete."""
        self._alive = False
        self._listeners.clear()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def reset(self) -> None:
        """Drop current items without a fetch, e.g. when a required parameter is cleared."""
        self._generation += 1
        self._is_loading = False
        self._apply(self._generation, [])

    async def load(self, params: Optional[Mapping[str, Any]] = None) -> list[T]:
        self._generation += 1
        generation = self._generation
        request_params: Mapping[str, Any] = dict(params or {})

        if self._coordinator is not None:
            cached = self._coordinator.store.get(self._cache_key)
            if cached is not MISS:
                self._apply(generation, list(cached))
                return self.items

        self._is_loading = True
        try:
            result = await self._fetch(request_params)
        except Exception:
            logger.exception("Lookup list fetch failed. name=%s", self._name)
            self._apply(generation, self._fallback_items())
        else:
            self._apply(generation, list(result))
        finally:
            if generation == self._generation:
                self._is_loading = False
        return self.items

    async def _fetch(self, params: Mapping[str, Any]) -> list[T]:
        if self._coordinator is None:
            return await self._loader(params)
        return await self._coordinator.fetch_or_reuse(self._cache_key, lambda: self._loader(params))

    def _fallback_items(self) -> list[T]:
        if self._coordinator is not None:
            entry = self._coordinator.store.peek(self._cache_key)
            if entry is not None:
                logger.warning("Serving stale lookup list after fetch failure. name=%s", self._name)
                return list(entry.value)
            return []
        if self._clear_on_error:
            return []
        return list(self._items)

    def _apply(self, generation: int, items: list[T]) -> None:
        if not self._alive:
            logger.debug("Discarding lookup result for closed accessor. name=%s", self._name)
            return
        if generation != self._generation:
            logger.debug(
                "Discarding superseded lookup result. name=%s generation=%s latest=%s",
                self._name,
                generation,
                self._generation,
            )
            return
        self._items = items
        for listener in list(self._listeners):
            listener(self.items)

    def _on_cache_updated(self, key: Hashable, value: Any) -> None:
        # A pending load of our own applies the same value with its generation check.
        if not self._alive or self._is_loading:
            return
        self._items = list(value)
        for listener in list(self._listeners):
            listener(self.items)
