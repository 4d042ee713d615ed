from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, TypeVar

T = TypeVar("T")

Record = dict[str, Any]


@dataclass(frozen=True, slots=True)
class PaginationMeta:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool = False
    has_prev: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PaginationMeta:
        page = int(payload.get("page", 1))
        limit = int(payload.get("limit", payload.get("pageSize", 0)))
        total = int(payload.get("total", 0))
        total_pages = payload.get("totalPages")
        if total_pages is None:
            total_pages = -(-total // limit) if limit > 0 else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=int(total_pages),
            has_next=bool(payload.get("hasNext", page < int(total_pages))),
            has_prev=bool(payload.get("hasPrev", page > 1)),
        )


@dataclass(frozen=True, slots=True)
class PaginatedResponse(Generic[T]):
    data: list[T]
    meta: PaginationMeta

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PaginatedResponse[Record]:
        data = payload.get("data") or []
        if not isinstance(data, list):
            raise ValueError(f"Paginated payload 'data' must be a list, got: {type(data).__name__}")
        meta_payload = payload.get("meta") or {"page": 1, "limit": len(data), "total": len(data)}
        return cls(data=list(data), meta=PaginationMeta.from_payload(meta_payload))


@dataclass(frozen=True, slots=True)
class MonthSlotsResponse:
    month: int
    year: int
    available_dates: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> MonthSlotsResponse:
        return cls(
            month=int(payload.get("month", 0)),
            year=int(payload.get("year", 0)),
            available_dates=[str(d) for d in payload.get("availableDates") or []],
        )


@dataclass(frozen=True, slots=True)
class TimeSlot:
    time_start: str
    time_end: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> TimeSlot:
        return cls(time_start=str(payload["timeStart"]), time_end=str(payload["timeEnd"]))
