"""Tests for the paginated listing and record lookup."""
import pytest

from usaccidents_insights.cache import TTLCache
from usaccidents_insights.errors import NotFound, UpstreamQueryFailure
from usaccidents_insights.filters import FilterSpec
from usaccidents_insights.service import COUNT_TTL, AccidentService


@pytest.fixture
def five(seed, make_accident):
    seed(*[make_accident(i, severity=(i % 4) + 1) for i in range(1, 6)])


def _ids(page):
    return [row["id"] for row in page.data]


class TestOffsetMode:
    def test_first_page(self, service, five):
        page = service.list_accidents(FilterSpec(), page=0, limit=2)
        assert _ids(page) == ["5", "4"]
        assert page.total == 5
        assert page.total_page == 3
        assert page.next is True
        assert page.has_more is True
        assert page.next_cursor == "4"

    def test_last_page(self, service, five):
        page = service.list_accidents(FilterSpec(), page=2, limit=2)
        assert _ids(page) == ["1"]
        assert page.next is False
        assert page.has_more is False
        assert page.next_cursor is None

    def test_limit_is_capped(self, session_factory, clock, five):
        svc = AccidentService(session_factory, cache=TTLCache(clock=clock), max_list_limit=3)
        try:
            page = svc.list_accidents(FilterSpec(), page=0, limit=100)
        finally:
            svc.close()
        assert page.limit == 3
        assert len(page.data) == 3

    def test_row_shape(self, service, five):
        row = service.list_accidents(FilterSpec(), page=0, limit=1).data[0]
        assert set(row) >= {"id", "severity", "city", "state", "county", "startTime", "startLat", "startLng"}


class TestCursorMode:
    def test_walk_with_cursor(self, service, five):
        first = service.list_accidents(FilterSpec(), limit=2)
        second = service.list_accidents(FilterSpec(), limit=2, cursor=first.next_cursor)
        assert _ids(second) == ["3", "2"]
        assert second.next_cursor == "2"
        assert second.has_more is True

        third = service.list_accidents(FilterSpec(), limit=2, cursor=second.next_cursor)
        assert _ids(third) == ["1"]
        assert third.has_more is False
        assert third.next_cursor is None

    def test_total_ignores_cursor(self, service, five):
        page = service.list_accidents(FilterSpec(), limit=2, cursor="3")
        assert page.total == 5
        assert page.total_page == 3


class TestFiltersAndCount:
    def test_out_of_range_severity_is_ignored(self, service, five):
        unfiltered = service.list_accidents(FilterSpec(), limit=10)
        filtered = service.list_accidents(FilterSpec.from_params({"severity": "5"}), limit=10)
        assert _ids(filtered) == _ids(unfiltered)
        assert filtered.total == 5

    def test_severity_filter(self, service, five):
        # severities: id1->2, id2->3, id3->4, id4->1, id5->2
        page = service.list_accidents(FilterSpec.from_params({"severity": "2"}), limit=10)
        assert _ids(page) == ["5", "1"]
        assert page.total == 2

    def test_state_all_matches_unfiltered(self, service, seed, make_accident):
        seed(make_accident(1, state="TX"), make_accident(2, state="CA"))
        a = service.list_accidents(FilterSpec.from_params({"state": "all"}), limit=10)
        b = service.list_accidents(FilterSpec.from_params({}), limit=10)
        assert _ids(a) == _ids(b) == ["2", "1"]

    def test_search(self, service, seed, make_accident):
        seed(
            make_accident(1, city="Austin", state="TX", county="Travis"),
            make_accident(2, city="Reno", state="NV", county="Washoe"),
        )
        page = service.list_accidents(FilterSpec(search="Washoe"), limit=10)
        assert _ids(page) == ["2"]
        assert page.total == 1

    def test_count_is_cached_for_two_minutes(self, service, clock, five, seed, make_accident):
        assert service.list_accidents(FilterSpec(), limit=2).total == 5
        seed(make_accident(6))
        assert service.list_accidents(FilterSpec(), limit=2).total == 5
        clock.advance(COUNT_TTL + 1)
        assert service.list_accidents(FilterSpec(), limit=2).total == 6


class TestRecordLookup:
    def test_found(self, service, seed, make_accident):
        seed(make_accident("abc", traffic_signal=True, junction=None, day_of_week="Monday"))
        out = service.get_accident("abc")
        assert out["id"] == "abc"
        assert out["trafficSignal"] is True
        assert out["junction"] is None
        assert out["dayOfWeek"] == "Monday"

    def test_missing(self, service):
        with pytest.raises(NotFound):
            service.get_accident("missing")


def test_store_failure_is_wrapped(broken_service):
    with pytest.raises(UpstreamQueryFailure) as exc:
        broken_service.list_accidents(FilterSpec(), limit=2)
    assert exc.value.__cause__ is not None


class TestConstruction:
    def test_keeps_injected_empty_cache(self, session_factory, clock):
        cache = TTLCache(default_ttl=42, max_entries=3, clock=clock)
        svc = AccidentService(session_factory, cache=cache)
        try:
            assert len(cache) == 0
            assert svc.cache is cache
        finally:
            svc.close()

    def test_default_cache_uses_given_clock(self, session_factory, clock):
        svc = AccidentService(session_factory, clock=clock)
        try:
            assert svc.cache.clock is clock
        finally:
            svc.close()


@pytest.mark.parametrize("limit", [None, "0", "abc", "", float("nan")])
def test_unusable_limit_defaults_to_fifty(service, seed, make_accident, limit):
    seed(*[make_accident(i) for i in range(60)])
    page = service.list_accidents(FilterSpec(), page=0, limit=limit)
    assert page.limit == 50
    assert len(page.data) == 50
