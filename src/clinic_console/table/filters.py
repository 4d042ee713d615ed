from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional, Sequence

FilterType = Literal["string", "array"]
Codec = Callable[[Any], Any]


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple)) and len(value) == 0)


def first_value(value: Any) -> Any:
    """Array filter -> its single active value in the URL."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def singleton(value: Any) -> list[Any]:
    """URL value -> one-element array filter, or an empty array when absent."""
    if _is_blank(value):
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_string(value: Any) -> Any:
    return None if _is_blank(value) else str(value)


@dataclass(frozen=True, slots=True)
class ColumnFilterConfig:
    """
    Binds a column's filter value to one search parameter.

    `serialize` turns the column filter into its URL form, where None removes the key.
    `deserialize` turns the URL value back into a column filter, where None or an empty
    list means the column is unfiltered. Both default from `type`.
    """

    column_id: str
    search_key: str
    type: FilterType = "string"
    serialize: Optional[Codec] = None
    deserialize: Optional[Codec] = None

    def to_external(self, value: Any) -> Any:
        if self.serialize is not None:
            external = self.serialize(value)
        elif self.type == "array":
            external = first_value(value)
        else:
            external = _as_string(value)
        return None if _is_blank(external) else external

    def to_internal(self, external: Any) -> Any:
        if self.deserialize is not None:
            value = self.deserialize(external)
        elif self.type == "array":
            value = singleton(external)
        else:
            value = _as_string(external)
        return None if _is_blank(value) else value


def string_filter(column_id: str, search_key: Optional[str] = None) -> ColumnFilterConfig:
    return ColumnFilterConfig(column_id=column_id, search_key=search_key or column_id, type="string")


def array_filter(column_id: str, search_key: Optional[str] = None) -> ColumnFilterConfig:
    return ColumnFilterConfig(column_id=column_id, search_key=search_key or column_id, type="array")


def includes_string(cell: Any, filter_value: Any) -> bool:
    """Case-insensitive substring match."""
    if cell is None:
        return False
    return str(filter_value).casefold() in str(cell).casefold()


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def includes_some(cell: Any, filter_value: Sequence[Any]) -> bool:
    """Match when the cell equals any of the selected values, compared as URL text."""
    wanted = {_as_text(v) for v in filter_value}
    if isinstance(cell, (list, tuple, set, frozenset)):
        return any(_as_text(v) in wanted for v in cell)
    return _as_text(cell) in wanted


def auto_filter(cell: Any, filter_value: Any) -> bool:
    if isinstance(filter_value, (list, tuple)):
        return includes_some(cell, filter_value)
    return includes_string(cell, filter_value)
