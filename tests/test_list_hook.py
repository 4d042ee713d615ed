import asyncio
import unittest

from clinic_console.cache.coordinator import FetchCoordinator
from clinic_console.cache.store import CacheStore
from clinic_console.lookups.list_hook import ListHook

from support import FakeClock, GatedLoader


class CachedListHookTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.store = CacheStore(ttl_seconds=600, clock=self.clock)
        self.coordinator = FetchCoordinator(self.store)

    def _hook(self, loader, name: str = "specialties") -> ListHook:
        return ListHook(name=name, loader=loader, coordinator=self.coordinator, cache_key=name)

    async def test_starts_with_cached_items(self) -> None:
        self.store.set("specialties", [{"id": "s1"}])
        hook = self._hook(GatedLoader(result=[]))

        self.assertEqual(hook.items, [{"id": "s1"}])
        self.assertTrue(hook.is_cached)

    async def test_two_hooks_share_one_fetch(self) -> None:
        loader = GatedLoader(result=[{"id": "s1"}])
        first = self._hook(loader)
        second = self._hook(loader)

        tasks = [asyncio.create_task(first.load()), asyncio.create_task(second.load())]
        await asyncio.sleep(0)
        self.assertTrue(first.is_loading)
        loader.release.set()
        await asyncio.gather(*tasks)

        self.assertEqual(loader.calls, 1)
        self.assertEqual(first.items, [{"id": "s1"}])
        self.assertEqual(second.items, [{"id": "s1"}])
        self.assertFalse(first.is_loading)

    async def test_other_hooks_follow_cache_updates(self) -> None:
        loader = GatedLoader(result=[{"id": "s2"}])
        loader.release.set()
        reader = self._hook(loader)
        seen = []
        reader.on_change(seen.append)

        self.store.set("specialties", [{"id": "s3"}])

        self.assertEqual(reader.items, [{"id": "s3"}])
        self.assertEqual(seen, [[{"id": "s3"}]])

    async def test_failure_serves_stale_entry(self) -> None:
        self.store.set("specialties", [{"id": "old"}])
        self.clock.advance(700)
        loader = GatedLoader(error=RuntimeError("down"))
        loader.release.set()
        hook = self._hook(loader)

        with self.assertLogs("clinic_console.lookups.list_hook", level="WARNING"):
            items = await hook.load()

        self.assertEqual(items, [{"id": "old"}])
        self.assertFalse(hook.is_loading)

    async def test_failure_without_any_entry_gives_empty_list(self) -> None:
        loader = GatedLoader(error=RuntimeError("down"))
        loader.release.set()
        hook = self._hook(loader)

        with self.assertLogs("clinic_console.lookups.list_hook", level="ERROR"):
            items = await hook.load()

        self.assertEqual(items, [])

    async def test_closed_hook_ignores_results(self) -> None:
        loader = GatedLoader(result=[{"id": "late"}])
        hook = self._hook(loader)

        task = asyncio.create_task(hook.load())
        await asyncio.sleep(0)
        hook.close()
        loader.release.set()
        await task

        self.assertEqual(hook.items, [])
        self.assertFalse(hook.is_alive)
        # The shared cache is still populated for other consumers.
        self.assertEqual(self.store.get("specialties"), [{"id": "late"}])

    def test_requires_coordinator_and_key_together(self) -> None:
        with self.assertRaises(ValueError):
            ListHook(name="x", loader=GatedLoader(), coordinator=self.coordinator)


class UncachedListHookTests(unittest.IsolatedAsyncioTestCase):
    async def test_every_load_hits_the_loader(self) -> None:
        loader = GatedLoader(result=["a"])
        loader.release.set()
        hook = ListHook(name="doctors", loader=loader)

        await hook.load({"workLocationId": "loc-1"})
        await hook.load({"workLocationId": "loc-1"})

        self.assertEqual(loader.calls, 2)
        self.assertFalse(hook.is_cached)

    async def test_superseded_response_is_discarded(self) -> None:
        responses = {"loc-1": asyncio.Event(), "loc-2": asyncio.Event()}

        async def loader(params):
            await responses[params["workLocationId"]].wait()
            return [params["workLocationId"]]

        hook = ListHook(name="doctors", loader=loader)
        slow = asyncio.create_task(hook.load({"workLocationId": "loc-1"}))
        fast = asyncio.create_task(hook.load({"workLocationId": "loc-2"}))
        await asyncio.sleep(0)

        responses["loc-2"].set()
        await fast
        responses["loc-1"].set()
        await slow

        self.assertEqual(hook.items, ["loc-2"])
        self.assertFalse(hook.is_loading)

    async def test_failure_keeps_items_by_default(self) -> None:
        outcomes = [["a"], RuntimeError("down")]

        async def loader(params):
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        hook = ListHook(name="doctors", loader=loader)
        await hook.load()
        with self.assertLogs("clinic_console.lookups.list_hook", level="ERROR"):
            await hook.load()

        self.assertEqual(hook.items, ["a"])

    async def test_failure_clears_items_when_configured(self) -> None:
        outcomes = [["2026-03-01"], RuntimeError("down")]

        async def loader(params):
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        hook = ListHook(name="available_dates", loader=loader, clear_on_error=True)
        await hook.load()
        with self.assertLogs("clinic_console.lookups.list_hook", level="ERROR"):
            await hook.load()

        self.assertEqual(hook.items, [])

    async def test_reset_drops_items_and_pending_result(self) -> None:
        loader = GatedLoader(result=["slot"])
        hook = ListHook(name="slots", loader=loader)

        task = asyncio.create_task(hook.load())
        await asyncio.sleep(0)
        hook.reset()
        loader.release.set()
        await task

        self.assertEqual(hook.items, [])
        self.assertFalse(hook.is_loading)


if __name__ == "__main__":
    unittest.main()
