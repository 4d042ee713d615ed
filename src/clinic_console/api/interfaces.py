from __future__ import annotations

from typing import Any, Literal, Mapping, Optional

from clinic_console.api.models import MonthSlotsResponse, PaginatedResponse, Record, TimeSlot

ListResource = Literal["work_locations", "specialties", "public_doctors", "patients"]

LIST_RESOURCE_PATHS: dict[str, str] = {
    "work_locations": "/work-locations/public",
    "specialties": "/specialties/public",
    "public_doctors": "/doctors/profile/public",
    "patients": "/patients",
}


class ApiError(RuntimeError):
    """A console API call failed with an HTTP status or after exhausting retries."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ConsoleApi:
    """
    Remote collaborators used by the data-access layer.

    Only the request/response shapes matter here; transport is left to implementations.
    """

    async def fetch_list(self, resource: ListResource, params: Mapping[str, Any]) -> PaginatedResponse[Record]:
        """Return one page of a paginated resource list."""
        raise NotImplementedError

    async def fetch_month_slots(
        self,
        *,
        subject_id: str,
        location_id: str,
        month: int,
        year: int,
        include_past: bool,
    ) -> MonthSlotsResponse:
        """Return the dates with at least one free slot in one calendar month."""
        raise NotImplementedError

    async def fetch_day_slots(
        self,
        *,
        subject_id: str,
        location_id: str,
        service_date: str,
        include_past: bool,
    ) -> list[TimeSlot]:
        """Return free time slots for one ISO `yyyy-MM-dd` date."""
        raise NotImplementedError
