"""Lookup list accessors built on the shared request cache."""

from clinic_console.lookups.appointment_form import AppointmentLookups
from clinic_console.lookups.list_hook import ListHook
from clinic_console.lookups.search import DebouncedSearch
from clinic_console.lookups.windows import AvailabilityWindow, WindowAggregator, derive_windows

__all__ = [
    "AppointmentLookups",
    "AvailabilityWindow",
    "DebouncedSearch",
    "ListHook",
    "WindowAggregator",
    "derive_windows",
]
