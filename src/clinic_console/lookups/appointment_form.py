from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping, Optional

from clinic_console.api.interfaces import ConsoleApi, ListResource
from clinic_console.api.models import Record, TimeSlot
from clinic_console.cache.coordinator import SharedCache
from clinic_console.config.models import SearchSettings
from clinic_console.lookups.list_hook import ListHook, ListLoader
from clinic_console.lookups.search import DebouncedSearch
from clinic_console.lookups.windows import WindowAggregator

logger = logging.getLogger(__name__)

WORK_LOCATIONS_PARAMS = {"page": 1, "limit": 100}
SPECIALTIES_PARAMS = {"page": 1, "limit": 100}
PUBLIC_DOCTORS_PARAMS = {"page": 1, "limit": 20, "sortBy": "createdAt", "sortOrder": "desc"}
DOCTORS_BY_FILTER_PARAMS = {"page": 1, "limit": 100}


def _list_loader(api: ConsoleApi, resource: ListResource, base_params: Mapping[str, Any]) -> ListLoader[Record]:
    async def _load(params: Mapping[str, Any]) -> list[Record]:
        response = await api.fetch_list(resource, {**base_params, **params})
        return response.data

    return _load


class AppointmentLookups:
    """
    Lookup lists behind the appointment form: patient, location, specialty, doctor,
    date, then time slot.

    Static lists (work locations, specialties, public doctors, default patients) share
    the process cache. Lists that depend on earlier selections are fetched fresh.
    """

    def __init__(
        self,
        *,
        api: ConsoleApi,
        cache: SharedCache,
        allow_past_dates: bool = False,
        search_settings: Optional[SearchSettings] = None,
    ) -> None:
        search_settings = search_settings or SearchSettings()
        coordinator = cache.coordinator
        self._allow_past_dates = allow_past_dates

        self.work_locations: ListHook[Record] = ListHook(
            name="work_locations",
            loader=_list_loader(api, "work_locations", WORK_LOCATIONS_PARAMS),
            coordinator=coordinator,
            cache_key="work_locations",
        )
        self.specialties: ListHook[Record] = ListHook(
            name="specialties",
            loader=_list_loader(api, "specialties", SPECIALTIES_PARAMS),
            coordinator=coordinator,
            cache_key="specialties",
        )
        self.public_doctors: ListHook[Record] = ListHook(
            name="public_doctors",
            loader=_list_loader(api, "public_doctors", PUBLIC_DOCTORS_PARAMS),
            coordinator=coordinator,
            cache_key="public_doctors",
        )
        self.initial_patients: ListHook[Record] = ListHook(
            name="initial_patients",
            loader=_list_loader(
                api,
                "patients",
                {
                    "page": 1,
                    "limit": search_settings.default_limit,
                    "sortBy": "createdAt",
                    "sortOrder": "desc",
                    "includedDeleted": True,
                    "search": "",
                },
            ),
            coordinator=coordinator,
            cache_key="initial_patients",
        )
        self.patient_search: DebouncedSearch[Record] = DebouncedSearch(
            name="patients",
            loader=_list_loader(api, "patients", {}),
            default_hook=self.initial_patients,
            debounce_seconds=search_settings.debounce_seconds,
            result_limit=search_settings.result_limit,
        )
        self.doctors: ListHook[Record] = ListHook(
            name="doctors_by_location_and_specialty",
            loader=_list_loader(api, "public_doctors", DOCTORS_BY_FILTER_PARAMS),
        )

        self._aggregator = WindowAggregator(api)
        self.available_dates: ListHook[str] = ListHook(
            name="available_dates",
            loader=self._load_available_dates,
            clear_on_error=True,
        )

        async def _load_slots(params: Mapping[str, Any]) -> list[TimeSlot]:
            return await api.fetch_day_slots(**params)

        self.slots: ListHook[TimeSlot] = ListHook(
            name="available_slots",
            loader=_load_slots,
            clear_on_error=True,
        )

    async def load_static_lists(self) -> None:
        await self.work_locations.load()
        await self.specialties.load()
        await self.public_doctors.load()
        await self.initial_patients.load()

    async def select_location_and_specialty(
        self,
        location_id: Optional[str],
        specialty_id: Optional[str],
    ) -> list[Record]:
        if not location_id or not specialty_id:
            self.doctors.reset()
            return []
        return await self.doctors.load({"workLocationIds": location_id, "specialtyIds": specialty_id})

    async def select_doctor(
        self,
        profile_id: Optional[str],
        location_id: Optional[str],
        *,
        anchor: Optional[date] = None,
    ) -> list[str]:
        if not profile_id or not location_id:
            self.available_dates.reset()
            return []
        return await self.available_dates.load(
            {"subject_id": profile_id, "location_id": location_id, "anchor": anchor or date.today()}
        )

    async def select_date(
        self,
        profile_id: Optional[str],
        location_id: Optional[str],
        service_date: Optional[date],
    ) -> list[TimeSlot]:
        if not profile_id or not location_id or service_date is None:
            self.slots.reset()
            return []
        return await self.slots.load(
            {
                "subject_id": profile_id,
                "location_id": location_id,
                "service_date": service_date.isoformat(),
                "include_past": self._allow_past_dates,
            }
        )

    def close(self) -> None:
        self.patient_search.close()
        for hook in (
            self.work_locations,
            self.specialties,
            self.public_doctors,
            self.initial_patients,
            self.doctors,
            self.available_dates,
            self.slots,
        ):
            hook.close()

    async def _load_available_dates(self, params: Mapping[str, Any]) -> list[str]:
        return await self._aggregator.available_dates(
            subject_id=params["subject_id"],
            location_id=params["location_id"],
            anchor=params["anchor"],
            include_past=self._allow_past_dates,
        )
