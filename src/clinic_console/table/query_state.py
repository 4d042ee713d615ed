from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Mapping, Optional

logger = logging.getLogger(__name__)

SortOrder = Literal["asc", "desc"]
SearchParams = dict[str, Any]
ChannelListener = Callable[[SearchParams], None]

PAGE_KEY = "page"
PAGE_SIZE_KEY = "pageSize"
SORT_BY_KEY = "sortBy"
SORT_ORDER_KEY = "sortOrder"
RESERVED_KEYS = frozenset({PAGE_KEY, PAGE_SIZE_KEY, SORT_BY_KEY, SORT_ORDER_KEY})

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple)) and len(value) == 0)


def apply_navigation(search: Mapping[str, Any], patch: Mapping[str, Any], *, replace: bool = False) -> SearchParams:
    """
    Pure reducer for the search-parameter channel.

    Merges `patch` into `search` (or replaces it outright) and drops keys whose value is
    None, an empty string or an empty list; that is how a key is removed.
    """
    merged: SearchParams = dict(patch) if replace else {**search, **patch}
    return {key: value for key, value in merged.items() if not _is_empty(value)}


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


@dataclass(frozen=True, slots=True)
class QueryState:
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE
    sort_by: Optional[str] = None
    sort_order: Optional[SortOrder] = None
    filters: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_search(
        cls,
        search: Mapping[str, Any],
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        default_sort_by: Optional[str] = None,
        default_sort_order: Optional[SortOrder] = None,
    ) -> QueryState:
        sort_order = search.get(SORT_ORDER_KEY)
        if isinstance(sort_order, str):
            sort_order = sort_order.lower()
        if sort_order not in ("asc", "desc"):
            sort_order = None

        sort_by = search.get(SORT_BY_KEY) or None
        if sort_by is None:
            sort_by = default_sort_by
            sort_order = sort_order or default_sort_order

        return cls(
            page=_positive_int(search.get(PAGE_KEY), DEFAULT_PAGE),
            page_size=_positive_int(search.get(PAGE_SIZE_KEY), default_page_size),
            sort_by=sort_by,
            sort_order=sort_order,
            filters={key: value for key, value in search.items() if key not in RESERVED_KEYS},
        )

    def to_search(self) -> SearchParams:
        search: SearchParams = {PAGE_KEY: self.page, PAGE_SIZE_KEY: self.page_size}
        if self.sort_by:
            search[SORT_BY_KEY] = self.sort_by
        if self.sort_order:
            search[SORT_ORDER_KEY] = self.sort_order
        search.update(self.filters)
        return apply_navigation({}, search)


class QueryStateChannel:
    """
    In-process stand-in for the URL search parameters.

    `navigate` is the only way to change the state; listeners are called with the new
    parameters after every change.
    """

    def __init__(self, search: Optional[Mapping[str, Any]] = None) -> None:
        self._search: SearchParams = apply_navigation({}, search or {})
        self._listeners: list[ChannelListener] = []

    @property
    def search(self) -> SearchParams:
        return dict(self._search)

    def navigate(self, patch: Mapping[str, Any], *, replace: bool = False) -> SearchParams:
        next_search = apply_navigation(self._search, patch, replace=replace)
        if next_search == self._search:
            return self.search
        self._search = next_search
        logger.debug("Query state changed. search=%s", next_search)
        for listener in list(self._listeners):
            listener(self.search)
        return self.search

    def subscribe(self, listener: ChannelListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
