import asyncio
import unittest

from clinic_console.cache.coordinator import FetchCoordinator, get_shared_cache, reset_shared_cache
from clinic_console.cache.store import MISS, CacheStore

from support import FakeClock, GatedLoader


class FetchOrReuseTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.store = CacheStore(ttl_seconds=600, clock=self.clock)
        self.coordinator = FetchCoordinator(self.store)

    async def test_fresh_entry_is_served_without_calling_loader(self) -> None:
        self.store.set("specialties", ["a"])
        loader = GatedLoader(result=["b"])

        value = await self.coordinator.fetch_or_reuse("specialties", loader)

        self.assertEqual(value, ["a"])
        self.assertEqual(loader.calls, 0)

    async def test_expired_entry_triggers_exactly_one_call(self) -> None:
        self.store.set("specialties", ["a"])
        self.clock.advance(601)
        loader = GatedLoader(result=["b"])
        loader.release.set()

        value = await self.coordinator.fetch_or_reuse("specialties", loader)
        again = await self.coordinator.fetch_or_reuse("specialties", loader)

        self.assertEqual(value, ["b"])
        self.assertEqual(again, ["b"])
        self.assertEqual(loader.calls, 1)

    async def test_concurrent_callers_share_one_call(self) -> None:
        loader = GatedLoader(result=["x", "y"])

        tasks = [asyncio.create_task(self.coordinator.fetch_or_reuse("doctors", loader)) for _ in range(5)]
        await asyncio.sleep(0)
        self.assertTrue(self.coordinator.is_in_flight("doctors"))

        loader.release.set()
        results = await asyncio.gather(*tasks)

        self.assertEqual(loader.calls, 1)
        self.assertEqual(results, [["x", "y"]] * 5)
        self.assertFalse(self.coordinator.is_in_flight("doctors"))
        self.assertEqual(self.store.get("doctors"), ["x", "y"])

    async def test_failure_clears_flag_and_leaves_cache_untouched(self) -> None:
        self.store.set("doctors", ["stale"])
        self.clock.advance(601)
        loader = GatedLoader(error=RuntimeError("down"))

        owner = asyncio.create_task(self.coordinator.fetch_or_reuse("doctors", loader))
        waiter = asyncio.create_task(self.coordinator.fetch_or_reuse("doctors", loader))
        await asyncio.sleep(0)
        loader.release.set()
        results = await asyncio.gather(owner, waiter, return_exceptions=True)

        self.assertEqual(loader.calls, 1)
        self.assertTrue(all(isinstance(r, RuntimeError) for r in results))
        self.assertFalse(self.coordinator.is_in_flight("doctors"))
        self.assertIs(self.store.get("doctors"), MISS)
        self.assertEqual(self.store.peek("doctors").value, ["stale"])

    async def test_different_keys_do_not_block_each_other(self) -> None:
        slow = GatedLoader(result="slow")
        fast = GatedLoader(result="fast")
        fast.release.set()

        slow_task = asyncio.create_task(self.coordinator.fetch_or_reuse("a", slow))
        await asyncio.sleep(0)
        fast_value = await self.coordinator.fetch_or_reuse("b", fast)

        self.assertEqual(fast_value, "fast")
        self.assertTrue(self.coordinator.is_in_flight("a"))
        slow.release.set()
        self.assertEqual(await slow_task, "slow")


class SharedCacheTests(unittest.TestCase):
    def tearDown(self) -> None:
        reset_shared_cache()

    def test_shared_cache_is_created_once(self) -> None:
        reset_shared_cache()
        first = get_shared_cache(ttl_seconds=5)
        second = get_shared_cache(ttl_seconds=999)

        self.assertIs(first, second)
        self.assertIs(first.coordinator.store, first.store)
        self.assertEqual(first.store.ttl_millis, 5000)


if __name__ == "__main__":
    unittest.main()
