from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

import aiohttp

from clinic_console.api.interfaces import LIST_RESOURCE_PATHS, ApiError, ConsoleApi, ListResource
from clinic_console.api.models import MonthSlotsResponse, PaginatedResponse, Record, TimeSlot
from clinic_console.config.models import ApiSettings

logger = logging.getLogger(__name__)


def _encode_query(params: Mapping[str, Any]) -> dict[str, str]:
    query: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        else:
            query[key] = str(value)
    return query


class ConsoleApiClient(ConsoleApi):
    """aiohttp implementation of the console REST endpoints."""

    def __init__(self, settings: ApiSettings, session: Optional[aiohttp.ClientSession] = None) -> None:
        self._settings = settings
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> ConsoleApiClient:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        if self._session is not None:
            return
        timeout = aiohttp.ClientTimeout(total=self._settings.timeout_seconds)
        self._session = aiohttp.ClientSession(timeout=timeout, headers=self._default_headers())
        self._owns_session = True

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _default_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._settings.access_token:
            headers["Authorization"] = f"Bearer {self._settings.access_token}"
        return headers

    def _url(self, path: str) -> str:
        return f"{self._settings.base_url.rstrip('/')}/api{path}"

    async def fetch_list(self, resource: ListResource, params: Mapping[str, Any]) -> PaginatedResponse[Record]:
        path = LIST_RESOURCE_PATHS.get(resource)
        if path is None:
            raise ValueError(f"Unknown list resource: {resource}")
        payload = await self._get_json(path, params)
        if not isinstance(payload, dict):
            raise ApiError(f"Unexpected list payload for {resource}: {type(payload).__name__}")
        return PaginatedResponse.from_payload(payload)

    async def fetch_month_slots(
        self,
        *,
        subject_id: str,
        location_id: str,
        month: int,
        year: int,
        include_past: bool,
    ) -> MonthSlotsResponse:
        payload = await self._get_json(
            f"/doctors/profile/{subject_id}/month-slots",
            {"month": month, "year": year, "locationId": location_id, "allowPast": include_past},
        )
        if not isinstance(payload, dict):
            raise ApiError(f"Unexpected month-slots payload: {type(payload).__name__}")
        return MonthSlotsResponse.from_payload(payload)

    async def fetch_day_slots(
        self,
        *,
        subject_id: str,
        location_id: str,
        service_date: str,
        include_past: bool,
    ) -> list[TimeSlot]:
        payload = await self._get_json(
            f"/doctors/profile/{subject_id}/slots",
            {"locationId": location_id, "serviceDate": service_date, "allowPast": include_past},
        )
        if not isinstance(payload, list):
            raise ApiError(f"Unexpected slots payload: {type(payload).__name__}")
        return [TimeSlot.from_payload(item) for item in payload]

    async def _get_json(self, path: str, params: Mapping[str, Any]) -> Any:
        if self._session is None:
            await self.start()
        assert self._session is not None

        url = self._url(path)
        query = _encode_query(params)
        last_error: Optional[Exception] = None
        for attempt in range(self._settings.max_retries + 1):
            try:
                async with self._session.get(url, params=query) as resp:
                    if resp.status == 200:
                        return await resp.json()

                    response_text = await resp.text()
                    # Retry on rate limits (429) or server errors (5xx)
                    if resp.status == 429 or 500 <= resp.status < 600:
                        logger.warning(
                            "Console API request failed and will be retried. path=%s status=%s attempt=%s",
                            path,
                            resp.status,
                            attempt + 1,
                        )
                        last_error = ApiError(f"HTTP {resp.status}: {response_text}", status=resp.status)
                    else:
                        logger.error(
                            "Console API request failed with a non-retryable status. path=%s status=%s",
                            path,
                            resp.status,
                        )
                        raise ApiError(f"HTTP {resp.status}: {response_text}", status=resp.status)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(
                    "Console API request encountered a network error and will be retried. path=%s error=%s attempt=%s",
                    path,
                    str(e),
                    attempt + 1,
                )
                last_error = e

            if attempt < self._settings.max_retries:
                await asyncio.sleep(0.5 * (2 ** attempt))

        if isinstance(last_error, ApiError):
            raise last_error
        raise ApiError(f"Console API request failed after retries. path={path}") from last_error
