"""Console REST collaborators: request/response shapes and implementations."""

from clinic_console.api.client import ConsoleApiClient
from clinic_console.api.interfaces import ApiError, ConsoleApi, ListResource
from clinic_console.api.mock import MockConsoleApi
from clinic_console.api.models import MonthSlotsResponse, PaginatedResponse, PaginationMeta, Record, TimeSlot

__all__ = [
    "ApiError",
    "ConsoleApi",
    "ConsoleApiClient",
    "ListResource",
    "MockConsoleApi",
    "MonthSlotsResponse",
    "PaginatedResponse",
    "PaginationMeta",
    "Record",
    "TimeSlot",
]
