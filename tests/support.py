"""Shared fixtures for the test suite."""

from __future__ import annotations

import asyncio
from typing import Any


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += round(seconds * 1000)


class GatedLoader:
    """Async loader that blocks until released, counting how often it was started."""

    def __init__(self, result: Any = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls = 0
        self.release = asyncio.Event()

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        self.calls += 1
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.result


def patient(pid: str, name: str, created_at: str) -> dict[str, Any]:
    return {"id": pid, "fullName": name, "createdAt": created_at}
