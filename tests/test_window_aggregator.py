import unittest
from datetime import date

from clinic_console.api.mock import MockConsoleApi
from clinic_console.lookups.windows import AvailabilityWindow, WindowAggregator, derive_windows


class DeriveWindowsTests(unittest.TestCase):
    def test_mid_year_windows_stay_in_year(self) -> None:
        self.assertEqual(
            derive_windows(3, 2026),
            (AvailabilityWindow(3, 2026), AvailabilityWindow(4, 2026), AvailabilityWindow(5, 2026)),
        )

    def test_november_rolls_third_window(self) -> None:
        self.assertEqual(
            derive_windows(11, 2024),
            (AvailabilityWindow(11, 2024), AvailabilityWindow(12, 2024), AvailabilityWindow(1, 2025)),
        )

    def test_december_rolls_second_and_third_windows(self) -> None:
        self.assertEqual(
            derive_windows(12, 2024),
            (AvailabilityWindow(12, 2024), AvailabilityWindow(1, 2025), AvailabilityWindow(2, 2025)),
        )

    def test_month_is_validated(self) -> None:
        with self.assertRaises(ValueError):
            AvailabilityWindow(13, 2024)


class WindowAggregatorTests(unittest.IsolatedAsyncioTestCase):
    async def test_union_skips_failed_window(self) -> None:
        api = MockConsoleApi(
            month_dates={
                (9, 2024): ["2024-09-05", "2024-09-01"],
                (11, 2024): ["2024-09-10", "2024-09-05"],
            },
            failing_months={(10, 2024)},
        )

        with self.assertLogs("clinic_console.lookups.windows", level="WARNING"):
            dates = await WindowAggregator(api).available_dates(
                subject_id="doc-1", location_id="loc-1", anchor=date(2024, 9, 15)
            )

        self.assertEqual(dates, ["2024-09-01", "2024-09-05", "2024-09-10"])
        self.assertEqual(api.count_calls("month_slots"), 3)

    async def test_all_windows_failing_gives_empty_list(self) -> None:
        api = MockConsoleApi(failing_months={(12, 2024), (1, 2025), (2, 2025)})

        with self.assertLogs("clinic_console.lookups.windows", level="WARNING"):
            dates = await WindowAggregator(api).available_dates(
                subject_id="doc-1", location_id="loc-1", anchor=date(2024, 12, 1)
            )

        self.assertEqual(dates, [])

    async def test_requests_carry_rolled_over_windows(self) -> None:
        api = MockConsoleApi()

        await WindowAggregator(api).available_dates(
            subject_id="doc-1", location_id="loc-1", anchor=date(2024, 12, 20), include_past=True
        )

        requested = sorted((p["year"], p["month"]) for _, p in api.calls)
        self.assertEqual(requested, [(2024, 12), (2025, 1), (2025, 2)])
        self.assertTrue(all(p["include_past"] for _, p in api.calls))

    async def test_missing_ids_skip_the_network(self) -> None:
        api = MockConsoleApi()
        aggregator = WindowAggregator(api)

        self.assertEqual(await aggregator.available_dates(subject_id=None, location_id="loc-1"), [])
        self.assertEqual(await aggregator.available_dates(subject_id="doc-1", location_id=""), [])
        self.assertEqual(api.calls, [])


if __name__ == "__main__":
    unittest.main()
