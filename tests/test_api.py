"""HTTP-level tests: routing, camelCase payloads and error bodies."""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from usaccidents_insights.database import get_db
from usaccidents_insights.main import app, get_service


@pytest.fixture
def client(service, session_factory):
    def _db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_service] = lambda: service
    app.dependency_overrides[get_db] = _db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def broken_client(broken_service):
    app.dependency_overrides[get_service] = lambda: broken_service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def data(seed, make_accident):
    seed(
        make_accident(1, severity=2, state="TX", county="Travis", city="Austin",
                      start_lat=30.27, start_lng=-97.74, junction=True, temperature=70.0),
        make_accident(2, severity=3, state="TX", county="Travis", city="Austin",
                      start_time=datetime(2021, 3, 1, 22, 0), start_lat=30.26, start_lng=-97.73),
        make_accident(3, severity=4, state="CA", county="Los Angeles", city="Los Angeles",
                      start_lat=34.05, start_lng=-118.24, traffic_signal=True),
    )


def test_root(client):
    assert client.get("/").json()["docs"] == "/docs"


def test_healthz(client):
    body = client.get("/healthz").json()
    assert body["ok"] is True


class TestListing:
    def test_envelope(self, client, data):
        res = client.get("/accident", params={"page": "0", "limit": "2"})
        assert res.status_code == 200
        body = res.json()
        assert [r["id"] for r in body["data"]] == ["3", "2"]
        assert body["total"] == 3
        assert body["total_page"] == 2
        assert body["next"] is True
        assert body["hasMore"] is True
        assert body["nextCursor"] == "2"

    def test_cursor(self, client, data):
        body = client.get("/accident", params={"limit": "2", "cursor": "2"}).json()
        assert [r["id"] for r in body["data"]] == ["1"]
        assert body["hasMore"] is False
        assert body["nextCursor"] is None

    def test_garbage_paging_uses_defaults(self, client, data):
        body = client.get("/accident", params={"page": "abc", "limit": "xyz"}).json()
        assert body["page"] == 0
        assert body["limit"] == 50
        assert len(body["data"]) == 3

    def test_filters(self, client, data):
        body = client.get("/accident", params={"state": "TX", "severity": "all"}).json()
        assert body["total"] == 2

    def test_detail(self, client, data):
        body = client.get("/accident/1").json()
        assert body["city"] == "Austin"
        assert body["junction"] is True

    def test_detail_not_found(self, client, data):
        res = client.get("/accident/nope")
        assert res.status_code == 404
        body = res.json()
        assert body["statusCode"] == 404
        assert body["path"] == "/accident/nope"
        assert "timestamp" in body


class TestAggregates:
    def test_temporal_heatmap(self, client, data):
        body = client.get("/accident/temporal-heatmap", params={"state": "TX"}).json()
        assert set(body) == {"data", "maxCount", "totalAccidents"}
        assert body["totalAccidents"] == 2
        assert {"hour", "dayOfWeek", "count"} == set(body["data"][0])

    def test_time_of_day(self, client, data):
        body = client.get("/accident/temporal-heatmap", params={"timeOfDay": "night"}).json()
        assert body["totalAccidents"] == 1
        assert body["data"][0]["hour"] == 22

    def test_filter_options(self, client, data):
        body = client.get("/accident/filter-options").json()
        assert body == {"cities": ["Austin", "Los Angeles"], "states": ["CA", "TX"]}

    def test_hexbin(self, client, data):
        body = client.get("/accident/hexbin-map").json()
        assert body["totalAccidents"] == 3
        assert set(body["bounds"]) == {"minLat", "maxLat", "minLng", "maxLng"}

    def test_parallel_coordinates(self, client, data):
        body = client.get("/accident/parallel-coordinates", params={"limit": "2"}).json()
        assert len(body["data"]) == 2
        assert body["totalCount"] == 3
        assert set(body["ranges"]) == {"temperature", "humidity", "pressure", "visibility", "windSpeed"}
        assert "windSpeed" in body["data"][0]

    def test_treemap_omits_missing_children(self, client, data):
        body = client.get("/accident/treemap").json()
        root = body["data"]
        assert root["name"] == "USA"
        assert root["value"] == body["totalAccidents"] == 3
        county = root["children"][0]["children"][0]
        assert "children" not in county
        assert "avgSeverity" in county

    def test_treemap_state_reaches_cities(self, client, data):
        root = client.get("/accident/treemap", params={"state": "TX"}).json()["data"]
        assert root["children"][0]["children"][0]["children"][0]["name"] == "Austin"

    def test_stacked_bar(self, client, data):
        body = client.get("/accident/stacked-bar").json()
        assert [c["category"] for c in body["data"]] == ["Junction", "Traffic Signal", "Stop", "Crossing", "Bump"]
        junction = body["data"][0]
        assert junction["present"] == {"severity1": 0, "severity2": 1, "severity3": 0, "severity4": 0, "total": 1}

    def test_stacked_bar_single_type(self, client, data):
        body = client.get("/accident/stacked-bar", params={"poiType": "railway"}).json()
        assert [c["category"] for c in body["data"]] == ["Railway"]

    def test_unknown_poi_type_is_400(self, client):
        res = client.get("/accident/stacked-bar", params={"poiType": "bogus"})
        assert res.status_code == 400
        body = res.json()
        assert body["statusCode"] == 400
        assert "bogus" in body["message"]
        assert body["path"] == "/accident/stacked-bar"


def test_store_failure_is_500(broken_client):
    res = broken_client.get("/accident/temporal-heatmap")
    assert res.status_code == 500
    body = res.json()
    assert body["statusCode"] == 500
    assert body["message"] == "Internal server error"


def test_service_cache_follows_settings(monkeypatch):
    from dataclasses import replace

    from usaccidents_insights import main

    settings = replace(main.get_settings(), cache_max_entries=7, cache_default_ttl=11.0)
    monkeypatch.setattr(main, "get_settings", lambda: settings)
    monkeypatch.setattr(main, "_service", None)
    svc = main.get_service()
    try:
        assert svc.cache.max_entries == 7
        assert svc.cache.default_ttl == 11.0
    finally:
        svc.close()
