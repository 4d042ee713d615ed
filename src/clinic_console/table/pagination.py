from __future__ import annotations

from typing import Sequence

PAGE_SIZE_OPTIONS: tuple[int, ...] = (10, 20, 30, 40, 50)


def page_count(total: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got: {page_size}")
    return max(0, -(-total // page_size))


def ensure_page_in_range(requested_page: int, count: int) -> int:
    """Return the 1-based page to show: the last page when `requested_page` is past it."""
    if count > 0 and requested_page > count:
        return count
    return max(1, requested_page)


def to_page_index(page: int) -> int:
    """1-based external page -> 0-based internal index."""
    return page - 1


def to_page_number(page_index: int) -> int:
    """0-based internal index -> 1-based external page."""
    return page_index + 1


class PaginationController:
    def __init__(self, *, page_size_options: Sequence[int] = PAGE_SIZE_OPTIONS) -> None:
        if not page_size_options:
            raise ValueError("page_size_options must not be empty")
        self._page_size_options = tuple(page_size_options)

    @property
    def page_size_options(self) -> tuple[int, ...]:
        return self._page_size_options

    def check_page_size(self, page_size: int) -> int:
        if page_size not in self._page_size_options:
            raise ValueError(f"Unsupported page size {page_size}; choose one of {self._page_size_options}")
        return page_size

    def page_count(self, total: int, page_size: int) -> int:
        return page_count(total, page_size)

    def ensure_page_in_range(self, requested_page: int, count: int) -> int:
        return ensure_page_in_range(requested_page, count)

    def can_previous(self, page_index: int) -> bool:
        return page_index > 0

    def can_next(self, page_index: int, count: int) -> bool:
        return page_index + 1 < count

    def first(self) -> int:
        return 0

    def previous(self, page_index: int) -> int:
        return max(0, page_index - 1)

    def next(self, page_index: int, count: int) -> int:
        return min(page_index + 1, max(0, count - 1))

    def last(self, count: int) -> int:
        return max(0, count - 1)

    def slice_bounds(self, page_index: int, page_size: int) -> tuple[int, int]:
        start = page_index * page_size
        return start, start + page_size
