"""Tabular data engine synchronized with URL-style query state."""

from clinic_console.table.engine import Column, TableEngine, TableMode, TableView
from clinic_console.table.filters import ColumnFilterConfig, array_filter, string_filter
from clinic_console.table.pagination import PAGE_SIZE_OPTIONS, PaginationController, ensure_page_in_range, page_count
from clinic_console.table.query_state import QueryState, QueryStateChannel, apply_navigation

__all__ = [
    "Column",
    "ColumnFilterConfig",
    "PAGE_SIZE_OPTIONS",
    "PaginationController",
    "QueryState",
    "QueryStateChannel",
    "TableEngine",
    "TableMode",
    "TableView",
    "apply_navigation",
    "array_filter",
    "ensure_page_in_range",
    "page_count",
    "string_filter",
]
