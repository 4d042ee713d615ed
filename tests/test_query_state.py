import unittest

from clinic_console.table.filters import ColumnFilterConfig, array_filter, auto_filter, string_filter
from clinic_console.table.query_state import QueryState, QueryStateChannel, apply_navigation


class ApplyNavigationTests(unittest.TestCase):
    def test_merge_keeps_unrelated_keys(self) -> None:
        result = apply_navigation({"page": 2, "status": "APPROVED"}, {"page": 3})

        self.assertEqual(result, {"page": 3, "status": "APPROVED"})

    def test_empty_values_remove_keys(self) -> None:
        result = apply_navigation({"page": 2, "status": "APPROVED", "tags": ["a"]}, {"status": "", "tags": [], "page": None})

        self.assertEqual(result, {})

    def test_replace_discards_previous_state(self) -> None:
        result = apply_navigation({"page": 2, "status": "APPROVED"}, {"pageSize": 20}, replace=True)

        self.assertEqual(result, {"pageSize": 20})

    def test_input_is_not_mutated(self) -> None:
        search = {"page": 2}
        apply_navigation(search, {"page": None})

        self.assertEqual(search, {"page": 2})


class QueryStateTests(unittest.TestCase):
    def test_defaults_apply_when_keys_are_absent(self) -> None:
        state = QueryState.from_search({}, default_page_size=20, default_sort_by="createdAt", default_sort_order="desc")

        self.assertEqual(state.page, 1)
        self.assertEqual(state.page_size, 20)
        self.assertEqual((state.sort_by, state.sort_order), ("createdAt", "desc"))

    def test_parses_strings_and_splits_filters(self) -> None:
        state = QueryState.from_search({"page": "3", "pageSize": "30", "sortBy": "name", "sortOrder": "ASC", "status": "APPROVED"})

        self.assertEqual(state.page, 3)
        self.assertEqual(state.page_size, 30)
        self.assertEqual(state.sort_order, "asc")
        self.assertEqual(state.filters, {"status": "APPROVED"})

    def test_garbage_page_falls_back(self) -> None:
        state = QueryState.from_search({"page": "abc", "pageSize": "-5"})

        self.assertEqual((state.page, state.page_size), (1, 10))

    def test_to_search_round_trips(self) -> None:
        search = {"page": 2, "pageSize": 20, "sortBy": "name", "sortOrder": "desc", "status": "APPROVED"}

        self.assertEqual(QueryState.from_search(search).to_search(), search)


class QueryStateChannelTests(unittest.TestCase):
    def test_listeners_fire_only_on_change(self) -> None:
        channel = QueryStateChannel({"page": 1})
        seen = []
        unsubscribe = channel.subscribe(seen.append)

        channel.navigate({"page": 1})
        channel.navigate({"page": 2})
        unsubscribe()
        channel.navigate({"page": 3})

        self.assertEqual(seen, [{"page": 2}])
        self.assertEqual(channel.search, {"page": 3})


class ColumnFilterConfigTests(unittest.TestCase):
    def test_string_filter_round_trip(self) -> None:
        config = string_filter("status")

        self.assertEqual(config.to_external("APPROVED"), "APPROVED")
        self.assertEqual(config.to_internal("APPROVED"), "APPROVED")
        self.assertIsNone(config.to_external(""))
        self.assertIsNone(config.to_internal(None))

    def test_array_filter_uses_first_value(self) -> None:
        config = array_filter("isActive", "active")

        self.assertEqual(config.search_key, "active")
        self.assertEqual(config.to_external(["true", "false"]), "true")
        self.assertEqual(config.to_internal("true"), ["true"])
        self.assertIsNone(config.to_external([]))
        self.assertIsNone(config.to_internal(None))

    def test_custom_codec(self) -> None:
        config = ColumnFilterConfig(
            column_id="age", search_key="minAge", serialize=lambda v: None if v is None else int(v), deserialize=str
        )

        self.assertEqual(config.to_external("42"), 42)
        self.assertEqual(config.to_internal(42), "42")

    def test_auto_filter_matching(self) -> None:
        self.assertTrue(auto_filter("Approved", "appro"))
        self.assertFalse(auto_filter(None, "x"))
        self.assertTrue(auto_filter(True, ["true"]))
        self.assertTrue(auto_filter(["a", "b"], ["b"]))
        self.assertFalse(auto_filter("c", ["a", "b"]))


if __name__ == "__main__":
    unittest.main()
