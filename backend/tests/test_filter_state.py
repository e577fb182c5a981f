"""
Filter State Coordinator tests.

The API is a fake built from Mocks; debounce timers are fired by hand
(ManualTimerFactory), so cascades run synchronously in the test thread
except where a test starts its own thread.
"""

import threading
from unittest.mock import Mock

import pytest

from dashboard_client.api import ApiError, ApiResponse
from dashboard_client.cache import ClientCache
from dashboard_client.filter_state import FilterStateCoordinator, LevelStatus
from utils.cache_key import business_key, months_key, site_key

BUSINESSES = {
    "Energy": [{"BUNAME": "Grid Ops"}, {"BUNAME": "Solar"}],
    "Logistics": [{"BUNAME": "Freight"}],
    "All": [{"BUNAME": "Dairy"}, {"BUNAME": "Freight"}, {"BUNAME": "Grid Ops"}, {"BUNAME": "Solar"}],
}
SITES = {
    "Solar": [{"SINAME": "East Array"}, {"SINAME": "North Farm"}],
    "Freight": [{"SINAME": "Port Depot"}],
}
MONTHS = {
    "2024": [{"MONTH": 2, "MONTHNAME": "February"}, {"MONTH": 1, "MONTHNAME": "January"}],
    "2023": [{"MONTH": 12, "MONTHNAME": "December"}],
}


def make_fake_api():
    api = Mock()
    api.get_vertical.side_effect = lambda b, u: ApiResponse([{"VNAME": "Energy"}, {"VNAME": "Logistics"}])
    api.get_business.side_effect = lambda b, u, v: ApiResponse(list(BUSINESSES.get(v, [])))
    api.get_site.side_effect = lambda b, u, bu: ApiResponse(list(SITES.get(bu, [])))
    api.get_years.side_effect = lambda: ApiResponse([{"YEAR": 2024}, {"YEAR": 2023}], cached=True)
    api.get_months.side_effect = lambda y: ApiResponse(list(MONTHS.get(y, [])))
    api.clear_server_cache.return_value = {"status": "cache cleared"}
    return api


@pytest.fixture
def api():
    return make_fake_api()


@pytest.fixture
def cache(fake_clock):
    return ClientCache(clock=fake_clock)


@pytest.fixture
def coordinator(api, cache, timers):
    c = FilterStateCoordinator(api, cache, bucket_id=1, user_id=7, timer_factory=timers)
    yield c
    c.close()


def options(coordinator, level):
    return coordinator.level(level).options


class TestInitialLoad:

    def test_loads_vertical_and_years(self, coordinator, api):
        result = coordinator.load_initial()

        assert result == {"vertical": True, "years": True}
        assert options(coordinator, "vertical") == [{"VNAME": "Energy"}, {"VNAME": "Logistics"}]
        assert coordinator.level("years").status == LevelStatus.READY
        assert coordinator.level("years").cached is True
        assert coordinator.level("business").status == LevelStatus.UNSET
        api.get_vertical.assert_called_once_with(1, 7)

    def test_children_disabled_until_parent_set(self, coordinator):
        assert coordinator.is_enabled("vertical") is True
        assert coordinator.is_enabled("business") is False
        coordinator.set_filter("vertical", "Energy")
        assert coordinator.is_enabled("business") is True
        assert coordinator.is_enabled("site") is False

    def test_second_load_served_from_client_cache(self, coordinator, api):
        coordinator.load_initial()
        coordinator.load_initial()
        assert api.get_vertical.call_count == 1
        assert coordinator.level("vertical").cached is True


class TestDebounce:

    def test_burst_collapses_to_last_value(self, coordinator, api, timers):
        for v in ("v1", "v2", "v3", "v4", "v5"):
            coordinator.update_filter("vertical", v)

        api.get_business.assert_not_called()
        assert coordinator.filters.vertical == ""

        timers.fire()

        api.get_business.assert_called_once_with(1, 7, "v5")
        assert coordinator.filters.vertical == "v5"

    def test_debounce_window_is_300ms(self, coordinator, timers):
        coordinator.update_filter("year", "2024")
        assert timers.live[0].seconds == pytest.approx(0.3)

    def test_each_filter_has_its_own_debouncer(self, coordinator, api, timers):
        coordinator.update_filter("vertical", "Energy")
        coordinator.update_filter("year", "2024")
        assert len(timers.live) == 2

        timers.fire()

        api.get_business.assert_called_once_with(1, 7, "Energy")
        api.get_months.assert_called_once_with("2024")

    def test_flush_pending(self, coordinator, api):
        coordinator.update_filter("vertical", "Energy")
        assert coordinator.flush_pending() == 1
        assert coordinator.filters.vertical == "Energy"
        assert coordinator.flush_pending() == 0

    def test_set_filter_cancels_pending_change(self, coordinator, timers):
        coordinator.update_filter("vertical", "Logistics")
        coordinator.set_filter("vertical", "Energy")
        timers.fire()
        assert coordinator.filters.vertical == "Energy"

    def test_unknown_filter_rejected(self, coordinator):
        with pytest.raises(ValueError):
            coordinator.update_filter("region", "x")


class TestCascade:

    def test_vertical_change_resets_descendants(self, coordinator, api, cache):
        coordinator.set_filter("vertical", "Energy")
        coordinator.set_filter("business", "Solar")
        coordinator.set_filter("site", "North Farm")

        coordinator.set_filter("vertical", "Logistics")

        state = coordinator.filters
        assert (state.vertical, state.business, state.site) == ("Logistics", "", "")
        assert options(coordinator, "business") == [{"BUNAME": "Freight"}]
        assert coordinator.level("site").status == LevelStatus.UNSET
        assert options(coordinator, "site") == []
        # old lists stay cached under their own keys
        assert cache.has(business_key(1, 7, "Energy"))
        assert cache.has(site_key(1, 7, "Solar"))

    def test_returning_to_previous_parent_uses_client_cache(self, coordinator, api):
        coordinator.set_filter("vertical", "Energy")
        coordinator.set_filter("vertical", "Logistics")
        coordinator.set_filter("vertical", "Energy")

        assert api.get_business.call_count == 2
        assert coordinator.level("business").cached is True
        assert options(coordinator, "business") == BUSINESSES["Energy"]

    def test_same_value_is_noop(self, coordinator, api):
        assert coordinator.set_filter("vertical", "Energy") is True
        assert coordinator.set_filter("vertical", "Energy") is False
        assert api.get_business.call_count == 1

    def test_business_change_fetches_sites(self, coordinator, api):
        coordinator.set_filter("vertical", "Energy")
        coordinator.set_filter("business", "Solar")
        api.get_site.assert_called_once_with(1, 7, "Solar")
        assert options(coordinator, "site") == SITES["Solar"]

    def test_clearing_parent_does_not_fetch(self, coordinator, api):
        coordinator.set_filter("vertical", "Energy")
        coordinator.set_filter("business", "Solar")

        coordinator.set_filter("vertical", "")

        assert api.get_business.call_count == 1
        assert coordinator.level("business").status == LevelStatus.UNSET
        assert coordinator.filters.business == ""

    def test_all_sentinel_still_fetches_children(self, coordinator, api):
        coordinator.set_filter("vertical", "All")
        api.get_business.assert_called_once_with(1, 7, "All")
        assert len(options(coordinator, "business")) == 4

    def test_year_change_resets_month_and_date(self, coordinator, api, cache):
        coordinator.set_filter("year", "2024")
        coordinator.set_filter("month", "2")
        coordinator.set_filter("date", "All")

        coordinator.set_filter("year", "2023")

        state = coordinator.filters
        assert (state.year, state.month, state.date) == ("2023", "", "")
        assert options(coordinator, "months") == MONTHS["2023"]
        assert cache.has(months_key("2024"))

    def test_month_change_clears_date_only(self, coordinator, api):
        coordinator.set_filter("year", "2024")
        coordinator.set_filter("month", "2")
        coordinator.set_filter("date", "All")

        coordinator.set_filter("month", "1")

        state = coordinator.filters
        assert (state.year, state.month, state.date) == ("2024", "1", "")
        assert api.get_months.call_count == 1
        assert options(coordinator, "months") == MONTHS["2024"]

    def test_leaf_filters_only_set_value(self, coordinator, api):
        coordinator.set_filter("site", "North Farm")
        coordinator.set_filter("date", "All")
        api.get_site.assert_not_called()
        api.get_months.assert_not_called()
        assert coordinator.filters.site == "North Farm"

    def test_on_change_notified(self, api, cache, timers):
        seen = []
        with FilterStateCoordinator(api, cache, timer_factory=timers, on_change=seen.append) as c:
            c.set_filter("vertical", "Energy")
        assert "vertical" in seen
        assert "business" in seen


class TestErrors:

    def test_fetch_error_stored_per_level(self, coordinator, api):
        api.get_business.side_effect = ApiError("No matching BUID found", status=404)

        coordinator.load_initial()
        applied = coordinator.set_filter("vertical", "Energy")

        assert applied is True
        level = coordinator.level("business")
        assert level.status == LevelStatus.ERROR
        assert str(level.error) == "No matching BUID found"
        assert coordinator.level("vertical").status == LevelStatus.READY

    def test_errors_are_not_cached(self, coordinator, api, cache):
        api.get_business.side_effect = ApiError("boom", status=500)
        coordinator.set_filter("vertical", "Energy")
        assert not cache.has(business_key(1, 7, "Energy"))


class TestRefresh:

    def _select_everything(self, coordinator):
        coordinator.load_initial()
        coordinator.set_filter("vertical", "Energy")
        coordinator.set_filter("business", "Solar")
        coordinator.set_filter("year", "2024")

    def test_refresh_clears_both_caches_and_refetches(self, coordinator, api, cache):
        self._select_everything(coordinator)
        assert api.get_vertical.call_count == 1

        result = coordinator.refresh()

        assert result == {"vertical": True, "years": True, "business": True, "site": True, "months": True}
        api.clear_server_cache.assert_called_once_with()
        assert api.get_vertical.call_count == 2
        assert api.get_business.call_count == 2
        assert api.get_site.call_count == 2
        assert api.get_months.call_count == 2
        assert coordinator.filters.business == "Solar"

    def test_refresh_only_fetches_relevant_levels(self, coordinator, api):
        coordinator.load_initial()
        assert coordinator.relevant_levels() == ["vertical", "years"]
        coordinator.refresh()
        api.get_business.assert_not_called()
        api.get_months.assert_not_called()

    def test_one_failing_level_does_not_block_others(self, coordinator, api):
        self._select_everything(coordinator)
        api.get_years.side_effect = ApiError("HTTP error! status: 500", status=500)

        coordinator.refresh()

        assert coordinator.level("years").status == LevelStatus.ERROR
        for level in ("vertical", "business", "site", "months"):
            assert coordinator.level(level).status == LevelStatus.READY

    def test_server_cache_clear_failure_still_refetches(self, coordinator, api):
        coordinator.load_initial()
        api.clear_server_cache.side_effect = ApiError("down")

        coordinator.refresh()

        assert api.get_vertical.call_count == 2
        assert coordinator.level("vertical").status == LevelStatus.READY


class TestStaleResults:

    def test_slow_response_for_old_value_is_discarded(self, coordinator, api):
        started = threading.Event()
        release = threading.Event()

        def business(b, u, vertical):
            if vertical == "Energy":
                started.set()
                assert release.wait(5)
            return ApiResponse(list(BUSINESSES[vertical]))

        api.get_business.side_effect = business

        slow = threading.Thread(target=coordinator.set_filter, args=("vertical", "Energy"))
        slow.start()
        assert started.wait(5)

        coordinator.set_filter("vertical", "Logistics")
        release.set()
        slow.join(5)

        assert coordinator.filters.vertical == "Logistics"
        assert options(coordinator, "business") == BUSINESSES["Logistics"]
        assert coordinator.level("business").status == LevelStatus.READY


class TestSnapshot:

    def test_snapshot_shape(self, coordinator):
        coordinator.load_initial()
        coordinator.set_filter("vertical", "Energy")

        snap = coordinator.snapshot()

        assert snap["filters"] == {
            "vertical": "Energy", "business": "", "site": "",
            "year": "", "month": "", "date": "",
        }
        assert snap["bucketId"] == 1
        assert snap["userId"] == 7
        assert snap["data"]["business"] == BUSINESSES["Energy"]
        assert snap["loading"] == {lvl: False for lvl in ("vertical", "business", "site", "years", "months")}
        assert snap["errors"]["business"] is None
        assert snap["cached"]["years"] is True

    def test_copies_do_not_leak_internal_state(self, coordinator):
        coordinator.load_initial()
        coordinator.level("vertical").options.append({"VNAME": "Injected"})
        coordinator.filters.vertical = "Injected"
        assert {"VNAME": "Injected"} not in options(coordinator, "vertical")
        assert coordinator.filters.vertical == ""
