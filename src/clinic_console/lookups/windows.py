from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from clinic_console.api.interfaces import ConsoleApi

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AvailabilityWindow:
    month: int
    year: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got: {self.month}")


def derive_windows(anchor_month: int, anchor_year: int) -> tuple[AvailabilityWindow, AvailabilityWindow, AvailabilityWindow]:
    """
    The anchor month, the month after it and the month two after it.

    December rolls the second window into January of the next year; November and
    December roll the third window into the next year.
    """
    m, y = anchor_month, anchor_year
    first = AvailabilityWindow(month=m, year=y)
    second = AvailabilityWindow(month=1, year=y + 1) if m == 12 else AvailabilityWindow(month=m + 1, year=y)
    third = AvailabilityWindow(month=m - 10, year=y + 1) if m >= 11 else AvailabilityWindow(month=m + 2, year=y)
    return first, second, third


class WindowAggregator:
    """Collects available dates across three calendar-month windows in parallel."""

    def __init__(self, api: ConsoleApi) -> None:
        self._api = api

    async def available_dates(
        self,
        *,
        subject_id: Optional[str],
        location_id: Optional[str],
        anchor: Optional[date] = None,
        include_past: bool = False,
    ) -> list[str]:
        if not subject_id or not location_id:
            return []

        anchor = anchor or date.today()
        windows = derive_windows(anchor.month, anchor.year)
        results = await asyncio.gather(
            *(
                self._api.fetch_month_slots(
                    subject_id=subject_id,
                    location_id=location_id,
                    month=window.month,
                    year=window.year,
                    include_past=include_past,
                )
                for window in windows
            ),
            return_exceptions=True,
        )

        dates: set[str] = set()
        failed = 0
        for window, result in zip(windows, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                failed += 1
                logger.warning(
                    "Availability window failed. subject_id=%s location_id=%s month=%s year=%s error=%s",
                    subject_id,
                    location_id,
                    window.month,
                    window.year,
                    result,
                )
                continue
            dates.update(result.available_dates)

        # ISO yyyy-MM-dd strings sort chronologically.
        merged = sorted(dates)
        logger.debug(
            "Availability windows merged. subject_id=%s location_id=%s windows=%d failed=%d dates=%d",
            subject_id,
            location_id,
            len(windows),
            failed,
            len(merged),
        )
        return merged
