from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from clinic_console.lookups.list_hook import ListHook, ListLoader

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_DEBOUNCE_SECONDS = 0.8
SEARCH_RESULT_LIMIT = 20


@dataclass
class _PendingSearch:
    term: str
    generation: int
    task: asyncio.Task[None]
    waiting: bool = True


class DebouncedSearch(Generic[T]):
    """
    Free-text search over a remote list.

    A non-empty term is sent after `debounce_seconds` of quiet and never touches the
    cache. Clearing the term restores the default list immediately through the cached
    `default_hook`. A newer term cancels a timer that has not fired yet; a fetch that
    already started runs to completion and its result is dropped if superseded.
    """

    def __init__(
        self,
        *,
        name: str,
        loader: ListLoader[T],
        default_hook: ListHook[T],
        debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS,
        result_limit: int = SEARCH_RESULT_LIMIT,
    ) -> None:
        self._name = name
        self._loader = loader
        self._default_hook = default_hook
        self._debounce_seconds = debounce_seconds
        self._result_limit = result_limit

        self._term = ""
        self._items: list[T] = default_hook.items
        self._is_loading = False
        self._generation = 0
        self._alive = True
        self._pending: Optional[_PendingSearch] = None
        self._unsubscribe_default: Optional[Callable[[], None]] = default_hook.on_change(self._on_default_changed)

    @property
    def term(self) -> str:
        return self._term

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    def delay_for(self, term: str) -> float:
        return self._debounce_seconds if term.strip() else 0.0

    def set_term(self, term: str) -> asyncio.Task[None]:
        """Schedule a search for `term`, replacing any search whose timer has not fired."""
        term = term.strip()
        self._term = term
        self._generation += 1
        generation = self._generation

        pending = self._pending
        if pending is not None and pending.waiting and not pending.task.done():
            pending.task.cancel()

        task = asyncio.create_task(self._run_after_wait(term=term, generation=generation))
        self._pending = _PendingSearch(term=term, generation=generation, task=task)
        logger.debug(
            "Search scheduled. name=%s term=%r delay_seconds=%s generation=%s",
            self._name,
            term,
            self.delay_for(term),
            generation,
        )
        return task

    async def wait(self) -> None:
        """Wait until the most recently scheduled search has been applied or dropped."""
        while self._pending is not None:
            pending = self._pending
            try:
                await asyncio.shield(pending.task)
            except asyncio.CancelledError:
                if not pending.task.cancelled():
                    raise
            if self._pending is pending:
                return

    def close(self) -> None:
        """Clear the debounce timer and stop applying results."""
        self._alive = False
        if self._unsubscribe_default is not None:
            self._unsubscribe_default()
            self._unsubscribe_default = None
        pending = self._pending
        if pending is not None and pending.waiting and not pending.task.done():
            pending.task.cancel()

    async def _run_after_wait(self, *, term: str, generation: int) -> None:
        try:
            await asyncio.sleep(self.delay_for(term))
        except asyncio.CancelledError:
            return

        pending = self._pending
        if pending is not None and pending.generation == generation:
            pending.waiting = False

        if not self._alive or generation != self._generation:
            return

        self._is_loading = True
        try:
            if term:
                result = await self._loader({"page": 1, "limit": self._result_limit, "search": term})
            else:
                result = await self._default_hook.load()
        except Exception:
            logger.exception("Search failed. name=%s term=%r", self._name, term)
            self._apply(generation, [])
        else:
            self._apply(generation, list(result))
        finally:
            if generation == self._generation:
                self._is_loading = False

    def _apply(self, generation: int, items: list[T]) -> None:
        if not self._alive or generation != self._generation:
            logger.debug("Discarding superseded search result. name=%s generation=%s", self._name, generation)
            return
        self._items = items

    def _on_default_changed(self, items: list[T]) -> None:
        # The default list is only on screen while no term is entered.
        if self._alive and not self._term:
            self._items = list(items)
