from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Hashable, Iterable, Literal, Mapping, Optional, Sequence

from clinic_console.config.models import TableSettings
from clinic_console.table.filters import ColumnFilterConfig, auto_filter
from clinic_console.table.pagination import (
    PAGE_SIZE_OPTIONS,
    PaginationController,
    ensure_page_in_range,
    to_page_index,
    to_page_number,
)
from clinic_console.table.query_state import (
    DEFAULT_PAGE_SIZE,
    PAGE_KEY,
    PAGE_SIZE_KEY,
    SORT_BY_KEY,
    SORT_ORDER_KEY,
    QueryState,
    QueryStateChannel,
    SearchParams,
    SortOrder,
)

logger = logging.getLogger(__name__)

TableMode = Literal["client", "server"]
FilterFn = Callable[[Any, Any], bool]
RowIdFn = Callable[[Any, int], Hashable]
PageCallback = Callable[[int], None]

DEFAULT_SORT: tuple[str, SortOrder] = ("createdAt", "desc")


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def _default_row_id(row: Any, index: int) -> Hashable:
    row_id = _field(row, "id")
    return index if row_id is None else row_id


def _sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    if isinstance(value, (datetime, date)):
        return (1, value.isoformat())
    if isinstance(value, str):
        return (2, value.casefold())
    return (3, str(value))


@dataclass(frozen=True, slots=True)
class Column:
    id: str
    accessor: Optional[Callable[[Any], Any]] = None
    filter_fn: FilterFn = auto_filter
    sortable: bool = True
    hideable: bool = True
    # Filter value only ever comes from the query state; user edits are not applied.
    server_controlled: bool = False

    def value(self, row: Any) -> Any:
        if self.accessor is not None:
            return self.accessor(row)
        return _field(row, self.id)


@dataclass(frozen=True, slots=True)
class TableView:
    mode: TableMode
    rows: list[Any]
    page_index: int
    page_size: int
    page_count: int
    total_rows: int
    sort_by: Optional[str]
    sort_order: Optional[SortOrder]
    column_filters: Mapping[str, Any]
    selected_ids: frozenset[Hashable]
    visible_columns: tuple[str, ...]
    can_previous: bool
    can_next: bool

    @property
    def page(self) -> int:
        return to_page_number(self.page_index)


class TableEngine:
    """
    Reconciles a table's paging, sorting and filtering with an external query state.

    Server mode is chosen once, at construction, when an explicit `page_count` and both
    page callbacks are supplied. The rows are then taken as the already-filtered,
    already-sorted current page, and page changes only reach the view after the caller
    feeds the new query state back. Otherwise the engine runs in client mode and pages,
    sorts and filters the full row set in memory.

    Page, page size, sort and URL-bound column filters are always read from the query
    channel; `view()` is a projection of it. Row selection, column visibility and filters
    of columns without a `ColumnFilterConfig` stay local to the engine.
    """

    def __init__(
        self,
        *,
        columns: Sequence[Column],
        rows: Iterable[Any] = (),
        query: Optional[QueryStateChannel] = None,
        page_count: Optional[int] = None,
        on_page_change: Optional[PageCallback] = None,
        on_page_size_change: Optional[PageCallback] = None,
        total_count: Optional[int] = None,
        filter_configs: Sequence[ColumnFilterConfig] = (),
        row_id: RowIdFn = _default_row_id,
        default_sort: Optional[tuple[str, SortOrder]] = DEFAULT_SORT,
        page_size_options: Sequence[int] = PAGE_SIZE_OPTIONS,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._columns: dict[str, Column] = {}
        for column in columns:
            if column.id in self._columns:
                raise ValueError(f"Duplicate column id: {column.id}")
            self._columns[column.id] = column

        self._filter_configs: dict[str, ColumnFilterConfig] = {}
        for config in filter_configs:
            if config.column_id not in self._columns:
                raise ValueError(f"Filter config refers to unknown column: {config.column_id}")
            self._filter_configs[config.column_id] = config

        self._mode: TableMode = (
            "server"
            if page_count is not None and on_page_change is not None and on_page_size_change is not None
            else "client"
        )
        self._server_page_count = max(0, page_count or 0)
        self._on_page_change = on_page_change
        self._on_page_size_change = on_page_size_change
        self._total_count = total_count

        self._query = query or QueryStateChannel()
        self._row_id = row_id
        self._pagination = PaginationController(page_size_options=page_size_options)
        self._default_page_size = default_page_size
        if default_sort is not None and default_sort[0] in self._columns:
            self._default_sort: Optional[tuple[str, SortOrder]] = default_sort
        else:
            self._default_sort = None

        self._rows: list[Any] = []
        self._row_ids: list[Hashable] = []
        self._local_filters: dict[str, Any] = {}
        self._selection: set[Hashable] = set()
        self._hidden: set[str] = set()
        self._reconciling = False

        self._replace_rows(list(rows))
        self._unsubscribe: Optional[Callable[[], None]] = self._query.subscribe(self._on_query_changed)
        logger.debug("Table engine created. mode=%s columns=%d rows=%d", self._mode, len(self._columns), len(self._rows))
        self._reconcile()

    @classmethod
    def from_settings(cls, settings: TableSettings, **kwargs: Any) -> TableEngine:
        return cls(
            page_size_options=settings.page_size_options,
            default_page_size=settings.default_page_size,
            **kwargs,
        )

    @property
    def mode(self) -> TableMode:
        return self._mode

    @property
    def is_server_mode(self) -> bool:
        return self._mode == "server"

    @property
    def query(self) -> QueryStateChannel:
        return self._query

    @property
    def pagination(self) -> PaginationController:
        return self._pagination

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------
    # State projection
    # ------------------------------------------------------------------

    def query_state(self) -> QueryState:
        sort_by, sort_order = (None, None)
        if self._mode == "client" and self._default_sort is not None:
            sort_by, sort_order = self._default_sort
        return QueryState.from_search(
            self._query.search,
            default_page_size=self._default_page_size,
            default_sort_by=sort_by,
            default_sort_order=sort_order,
        )

    def column_filters(self) -> dict[str, Any]:
        search = self._query.search
        filters: dict[str, Any] = {}
        for column_id, config in self._filter_configs.items():
            value = config.to_internal(search.get(config.search_key))
            if value is not None:
                filters[column_id] = value
        for column_id, value in self._local_filters.items():
            filters.setdefault(column_id, value)
        return filters

    def page_count(self) -> int:
        if self._mode == "server":
            return self._server_page_count
        state = self.query_state()
        return self._pagination.page_count(len(self._filtered_rows(self.column_filters())), state.page_size)

    def view(self) -> TableView:
        state = self.query_state()
        filters = self.column_filters()

        if self._mode == "server":
            count = self._server_page_count
            page_index = to_page_index(state.page)
            rows = list(self._rows)
            total = self._total_count if self._total_count is not None else len(rows)
        else:
            matched = self._sorted_rows(self._filtered_rows(filters), state)
            total = len(matched)
            count = self._pagination.page_count(total, state.page_size)
            page_index = to_page_index(ensure_page_in_range(state.page, count))
            start, end = self._pagination.slice_bounds(page_index, state.page_size)
            rows = matched[start:end]

        return TableView(
            mode=self._mode,
            rows=rows,
            page_index=page_index,
            page_size=state.page_size,
            page_count=count,
            total_rows=total,
            sort_by=state.sort_by,
            sort_order=state.sort_order,
            column_filters=filters,
            selected_ids=frozenset(self._selection),
            visible_columns=self.visible_columns(),
            can_previous=self._pagination.can_previous(page_index),
            can_next=self._pagination.can_next(page_index, count),
        )

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def set_rows(
        self,
        rows: Iterable[Any],
        *,
        page_count: Optional[int] = None,
        total_count: Optional[int] = None,
    ) -> None:
        """Replace the row set; in server mode also take the new page count and total."""
        if self._mode == "server":
            if page_count is not None:
                self._server_page_count = max(0, page_count)
            if total_count is not None:
                self._total_count = total_count
        self._replace_rows(list(rows))
        self._reconcile()

    def _replace_rows(self, rows: list[Any]) -> None:
        row_ids = [self._row_id(row, index) for index, row in enumerate(rows)]
        if set(row_ids) != set(self._row_ids) and (self._selection or self._hidden):
            logger.debug("Row identities changed; resetting selection and column visibility.")
            self._selection.clear()
            self._hidden.clear()
        self._rows = rows
        self._row_ids = row_ids

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def set_page_index(self, page_index: int) -> None:
        page = to_page_number(max(0, page_index))
        if self._mode == "server":
            self._notify_page_change(page)
            return
        self._query.navigate({PAGE_KEY: page})

    def first_page(self) -> None:
        self.set_page_index(self._pagination.first())

    def previous_page(self) -> None:
        self.set_page_index(self._pagination.previous(self.view().page_index))

    def next_page(self) -> None:
        view = self.view()
        if view.can_next:
            self.set_page_index(self._pagination.next(view.page_index, view.page_count))

    def last_page(self) -> None:
        self.set_page_index(self._pagination.last(self.page_count()))

    def set_page_size(self, page_size: int) -> None:
        self._pagination.check_page_size(page_size)
        if self._mode == "server":
            on_page_size_change = self._on_page_size_change
            if on_page_size_change is None:
                raise RuntimeError("Server-mode table has no page-size callback")
            on_page_size_change(page_size)
            return
        self._query.navigate({PAGE_SIZE_KEY: page_size, PAGE_KEY: None})

    # ------------------------------------------------------------------
    # Sorting and filtering
    # ------------------------------------------------------------------

    def set_sorting(self, column_id: str, order: SortOrder = "asc") -> None:
        column = self._column(column_id)
        if not column.sortable:
            raise ValueError(f"Column is not sortable: {column_id}")
        if order not in ("asc", "desc"):
            raise ValueError(f"Invalid sort order: {order}")
        self._query.navigate({SORT_BY_KEY: column_id, SORT_ORDER_KEY: order})

    def clear_sorting(self) -> None:
        self._query.navigate({SORT_BY_KEY: None, SORT_ORDER_KEY: None})

    def set_column_filter(self, column_id: str, value: Any) -> None:
        column = self._column(column_id)
        if column.server_controlled:
            logger.debug("Ignoring user filter on server-controlled column. column_id=%s", column_id)
            return

        config = self._filter_configs.get(column_id)
        if config is not None:
            self._query.navigate({config.search_key: config.to_external(value), PAGE_KEY: None})
            return

        if value is None or value == "" or value == []:
            self._local_filters.pop(column_id, None)
        else:
            self._local_filters[column_id] = value
        self._reconcile()

    def reset_filters(self) -> None:
        self._local_filters.clear()
        patch: SearchParams = {config.search_key: None for config in self._filter_configs.values()}
        patch[PAGE_KEY] = None
        self._query.navigate(patch)
        self._reconcile()

    def _filtered_rows(self, filters: Mapping[str, Any]) -> list[Any]:
        if not filters:
            return list(self._rows)
        active = [(self._columns[column_id], value) for column_id, value in filters.items() if column_id in self._columns]
        return [row for row in self._rows if all(column.filter_fn(column.value(row), value) for column, value in active)]

    def _sorted_rows(self, rows: list[Any], state: QueryState) -> list[Any]:
        column = self._columns.get(state.sort_by or "")
        if column is None or not column.sortable:
            return rows
        descending = state.sort_order == "desc"
        present = [row for row in rows if column.value(row) is not None]
        missing = [row for row in rows if column.value(row) is None]
        present.sort(key=lambda row: _sort_key(column.value(row)), reverse=descending)
        return present + missing

    # ------------------------------------------------------------------
    # Selection and visibility
    # ------------------------------------------------------------------

    def toggle_row_selected(self, row_id: Hashable, selected: Optional[bool] = None) -> None:
        if row_id not in self._row_ids:
            raise KeyError(f"Unknown row id: {row_id}")
        should_select = (row_id not in self._selection) if selected is None else selected
        if should_select:
            self._selection.add(row_id)
        else:
            self._selection.discard(row_id)

    def select_page(self, selected: bool = True) -> None:
        page_ids = {self._row_id_of(row) for row in self.view().rows}
        if selected:
            self._selection |= page_ids
        else:
            self._selection -= page_ids

    def clear_selection(self) -> None:
        self._selection.clear()

    def selected_rows(self) -> list[Any]:
        return [row for row, row_id in zip(self._rows, self._row_ids) if row_id in self._selection]

    def set_column_visibility(self, column_id: str, visible: bool) -> None:
        column = self._column(column_id)
        if not column.hideable and not visible:
            raise ValueError(f"Column cannot be hidden: {column_id}")
        if visible:
            self._hidden.discard(column_id)
        else:
            self._hidden.add(column_id)

    def visible_columns(self) -> tuple[str, ...]:
        return tuple(column_id for column_id in self._columns if column_id not in self._hidden)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _on_query_changed(self, search: SearchParams) -> None:
        self._reconcile()

    def _reconcile(self) -> None:
        if self._reconciling:
            return
        self._reconciling = True
        try:
            state = self.query_state()
            count = self.page_count()
            corrected = ensure_page_in_range(state.page, count)
            if corrected == state.page:
                return
            logger.info(
                "Requested page is out of range; correcting. mode=%s page=%s page_count=%s corrected=%s",
                self._mode,
                state.page,
                count,
                corrected,
            )
            if self._mode == "server":
                self._notify_page_change(corrected)
            else:
                self._query.navigate({PAGE_KEY: corrected})
        finally:
            self._reconciling = False

    def _notify_page_change(self, page: int) -> None:
        on_page_change = self._on_page_change
        if on_page_change is None:
            raise RuntimeError("Server-mode table has no page-change callback")
        on_page_change(page)

    def _column(self, column_id: str) -> Column:
        column = self._columns.get(column_id)
        if column is None:
            raise KeyError(f"Unknown column: {column_id}")
        return column

    def _row_id_of(self, row: Any) -> Hashable:
        for candidate, row_id in zip(self._rows, self._row_ids):
            if candidate is row:
                return row_id
        raise KeyError("Row is not part of the current row set")
