from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping

from clinic_console.api.interfaces import ApiError, ConsoleApi, ListResource
from clinic_console.api.models import MonthSlotsResponse, PaginatedResponse, PaginationMeta, Record, TimeSlot


def _matches_search(record: Record, term: str) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    for key in ("fullName", "name", "email"):
        value = record.get(key)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


@dataclass(slots=True)
class MockConsoleApi(ConsoleApi):
    """
    A deterministic in-memory console API for tests and offline smoke runs.

    Every call is recorded in `calls` as `(operation, params)`. Failures are opt-in:
    list resources named in `failing_resources` and `(month, year)` windows named in
    `failing_months` raise `ApiError`.
    """

    lists: dict[str, list[Record]] = field(default_factory=dict)
    month_dates: dict[tuple[int, int], list[str]] = field(default_factory=dict)
    day_slots: dict[str, list[TimeSlot]] = field(default_factory=dict)
    failing_resources: set[str] = field(default_factory=set)
    failing_months: set[tuple[int, int]] = field(default_factory=set)
    latency_seconds: float = 0.0
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def count_calls(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    async def _simulate_latency(self) -> None:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)
        else:
            await asyncio.sleep(0)

    async def fetch_list(self, resource: ListResource, params: Mapping[str, Any]) -> PaginatedResponse[Record]:
        self.calls.append((f"list:{resource}", dict(params)))
        await self._simulate_latency()
        if resource in self.failing_resources:
            raise ApiError(f"Mock failure for resource {resource}", status=500)

        records = [r for r in self.lists.get(resource, []) if _matches_search(r, str(params.get("search") or ""))]
        page = max(1, int(params.get("page") or 1))
        limit = max(1, int(params.get("limit") or 10))
        start = (page - 1) * limit
        total = len(records)
        total_pages = -(-total // limit)
        return PaginatedResponse(
            data=records[start : start + limit],
            meta=PaginationMeta(
                page=page,
                limit=limit,
                total=total,
                total_pages=total_pages,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    async def fetch_month_slots(
        self,
        *,
        subject_id: str,
        location_id: str,
        month: int,
        year: int,
        include_past: bool,
    ) -> MonthSlotsResponse:
        self.calls.append(
            (
                "month_slots",
                {
                    "subject_id": subject_id,
                    "location_id": location_id,
                    "month": month,
                    "year": year,
                    "include_past": include_past,
                },
            )
        )
        await self._simulate_latency()
        if (month, year) in self.failing_months:
            raise ApiError(f"Mock failure for window {month}/{year}", status=503)
        return MonthSlotsResponse(month=month, year=year, available_dates=list(self.month_dates.get((month, year), [])))

    async def fetch_day_slots(
        self,
        *,
        subject_id: str,
        location_id: str,
        service_date: str,
        include_past: bool,
    ) -> list[TimeSlot]:
        self.calls.append(
            (
                "day_slots",
                {
                    "subject_id": subject_id,
                    "location_id": location_id,
                    "service_date": service_date,
                    "include_past": include_past,
                },
            )
        )
        await self._simulate_latency()
        return list(self.day_slots.get(service_date, []))
