#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/service.py
# Purpose: Cached aggregation/listing queries behind the dashboard API.
#
# Description of code and how it works:
# - AccidentService gets its session factory, cache, clock and sampling key
#   source through the constructor.
# - Every operation normalizes its filters into a cache key, checks the TTL
#   cache and, on a miss, runs parameterized SQLAlchemy queries.
# - Independent queries fan out to a thread pool (one session each);
#   the first failure fails the whole operation.
# - Store errors surface as UpstreamQueryFailure, never retried.
#
# Author: Tim Canady
# Created: 2025-11-03
#
# Version: 1.2.1
# Last Modified: 2025-12-01 by Tim Canady
#
# Revision History:
# - 1.2.1 (2025-12-01): Keep injected (possibly empty) cache; listing limit defaults to 50;
#   heatmap total counts rows with no hour/weekday.
# - 1.2.0 (2025-11-24): Treemap root severity; cursor-independent count cache.
# - 1.1.0 (2025-11-17): Thread-pool fan-out; sampled parallel coordinates.
# - 1.0.0 (2025-11-03): Listing, heatmap, hexbin, treemap, stacked bar.
###################################################################
#
from __future__ import annotations

import logging
import time
import uuid
from collections import defaultdict
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .cache import DEFAULT_TTL, TTLCache
from .errors import InvalidFilter, NotFound, UpstreamQueryFailure
from .filters import TIME_FIELDS, FilterSpec
from .models import Accident
from .pagination import build_pagination
from .schemas import (
    AccidentPage, Bounds, FilterOptions, HeatmapCell, HexbinMapData, HexbinPoint,
    ParallelCoordinatesData, POICategory, SeverityBreakdown, StackedBarData,
    TemporalHeatmapData, TreemapData, TreemapNode, ValueRange,
    WeatherAccidentPoint, WeatherRanges,
)

log = logging.getLogger("usaccidents")

COUNT_TTL = 2 * 60.0
FILTER_OPTIONS_TTL = 10 * 60.0
SAMPLE_TTL = 3 * 60.0

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200
MAX_FILTER_CITIES = 200

GRID_SIZE = 0.1  # degrees, ~11 km
DEFAULT_BOUNDS = {"min_lat": 24.0, "max_lat": 50.0, "min_lng": -125.0, "max_lng": -66.0}

DEFAULT_SAMPLE_LIMIT = 2000
WEATHER_FIELDS = ("temperature", "humidity", "pressure", "visibility", "wind_speed")
DEFAULT_RANGES = {
    "temperature": (0.0, 100.0),
    "humidity": (0.0, 100.0),
    "pressure": (28.0, 32.0),
    "visibility": (0.0, 10.0),
    "wind_speed": (0.0, 50.0),
}

TREEMAP_ROOT = "USA"
UNKNOWN_REGION = "Unknown"
MAX_CITIES_PER_COUNTY = 20
MAX_COUNTIES_PER_STATE = 30

POI_COLUMNS = {
    "junction": Accident.junction,
    "trafficSignal": Accident.traffic_signal,
    "stop": Accident.stop,
    "crossing": Accident.crossing,
    "bump": Accident.bump,
    "giveWay": Accident.give_way,
    "railway": Accident.railway,
    "station": Accident.station,
    "amenity": Accident.amenity,
}
DEFAULT_POI_TYPES = ("junction", "trafficSignal", "stop", "crossing", "bump")

HEATMAP_FIELDS = ("city", "state") + TIME_FIELDS
HEXBIN_FIELDS = ("state",) + TIME_FIELDS
PCP_FIELDS = ("severity",) + TIME_FIELDS
TREEMAP_FIELDS = ("state",) + TIME_FIELDS
LIST_FIELDS = ("search", "state", "city", "severity")


def poi_label(field: str) -> str:
    """trafficSignal -> Traffic Signal"""
    spaced = "".join(" " + c if c.isupper() else c for c in field).strip()
    return spaced[:1].upper() + spaced[1:]


def _accident_to_obj(x: Accident) -> Dict[str, Any]:
    return {
        "id": x.id,
        "severity": x.severity,
        "city": x.city,
        "state": x.state,
        "county": x.county,
        "zipcode": x.zipcode,
        "startTime": x.start_time.isoformat() if x.start_time else None,
        "description": x.description,
        "startLat": float(x.start_lat) if x.start_lat is not None else None,
        "startLng": float(x.start_lng) if x.start_lng is not None else None,
        "weatherCondition": x.weather_condition,
        "temperature": float(x.temperature) if x.temperature is not None else None,
    }


def _accident_detail(x: Accident) -> Dict[str, Any]:
    out = _accident_to_obj(x)
    out.update({
        "endTime": x.end_time.isoformat() if x.end_time else None,
        "street": x.street,
        "year": x.year,
        "month": x.month,
        "hour": x.hour,
        "dayOfWeek": x.day_of_week,
        "humidity": x.humidity,
        "pressure": x.pressure,
        "visibility": x.visibility,
        "windSpeed": x.wind_speed,
    })
    for name, col in POI_COLUMNS.items():
        flag = getattr(x, col.key)
        out[name] = bool(flag) if flag is not None else None
    return out


class AccidentService:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        cache: Optional[TTLCache] = None,
        clock: Optional[Callable[[], float]] = None,
        sample_key_factory: Optional[Callable[[], str]] = None,
        max_workers: int = 4,
        max_list_limit: int = MAX_LIST_LIMIT,
    ):
        self.session_factory = session_factory
        self.cache = cache if cache is not None else TTLCache(DEFAULT_TTL, clock=clock or time.monotonic)
        self.sample_key_factory = sample_key_factory or (lambda: str(uuid.uuid4()))
        self.max_list_limit = max_list_limit
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="accidents-q")

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    # --- query plumbing ------------------------------------------------------

    def _run(self, fn: Callable[[Session], Any]) -> Any:
        try:
            with self.session_factory() as session:
                return fn(session)
        except SQLAlchemyError as e:
            log.error("[QUERY] store failure: %s", e)
            raise UpstreamQueryFailure("accident store query failed") from e

    def _gather(self, *fns: Callable[[Session], Any]) -> List[Any]:
        """Run independent queries concurrently; the first error wins."""
        futures = [self._executor.submit(self._run, fn) for fn in fns]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for f in done:
            if f.exception() is not None:
                for p in pending:
                    p.cancel()
                raise f.exception()
        return [f.result() for f in futures]

    # --- listing -------------------------------------------------------------

    def _count(self, spec: FilterSpec) -> Callable[[Session], int]:
        def run(session: Session) -> int:
            stmt = select(func.count()).select_from(Accident).where(*spec.clauses())
            return int(session.execute(stmt).scalar_one())
        return run

    def list_accidents(
        self,
        filters: FilterSpec,
        page: Any = 0,
        limit: Any = DEFAULT_LIST_LIMIT,
        cursor: Optional[str] = None,
    ) -> AccidentPage:
        """Newest-id-first listing.

        With a cursor: rows with id < cursor. Without: offset page * limit.
        Both modes fetch limit + 1 rows to detect hasMore. The total counts the
        filters only, never the cursor, and is cached for two minutes.
        """
        spec = filters.only(*LIST_FIELDS)
        meta_in = build_pagination(0, page, limit, default_limit=DEFAULT_LIST_LIMIT)
        safe_limit = min(meta_in["limit"], self.max_list_limit)
        safe_page = meta_in["page"]

        count_key = spec.cache_key("count", LIST_FIELDS)
        total = self.cache.get(count_key)

        def rows(session: Session) -> List[Dict[str, Any]]:
            stmt = select(Accident).where(*spec.clauses())
            if cursor:
                stmt = stmt.where(Accident.id < cursor)
            else:
                stmt = stmt.offset(safe_page * safe_limit)
            stmt = stmt.order_by(Accident.id.desc()).limit(safe_limit + 1)
            return [_accident_to_obj(x) for x in session.execute(stmt).scalars()]

        if total is None:
            total, data = self._gather(self._count(spec), rows)
            self.cache.set(count_key, total, COUNT_TTL)
        else:
            data = self._run(rows)

        has_more = len(data) > safe_limit
        results = data[:safe_limit]
        next_cursor = results[-1]["id"] if has_more and results else None

        meta = build_pagination(total, safe_page, safe_limit)
        return AccidentPage(data=results, has_more=has_more, next_cursor=next_cursor, **meta)

    def get_accident(self, accident_id: str) -> Dict[str, Any]:
        def run(session: Session) -> Optional[Dict[str, Any]]:
            row = session.get(Accident, accident_id)
            return _accident_detail(row) if row is not None else None

        out = self._run(run)
        if out is None:
            raise NotFound(f"accident {accident_id} not found")
        return out

    # --- temporal heatmap ----------------------------------------------------

    def get_temporal_heatmap(self, filters: FilterSpec) -> TemporalHeatmapData:
        spec = filters.only(*HEATMAP_FIELDS)
        key = spec.cache_key("temporal-heatmap", HEATMAP_FIELDS)
        return self.cache.get_or_set(key, lambda: self._temporal_heatmap(spec))

    def _temporal_heatmap(self, spec: FilterSpec) -> TemporalHeatmapData:
        log.debug("[CACHE] miss temporal-heatmap %s", spec)

        def run(session: Session):
            stmt = (
                select(Accident.hour, Accident.day_of_week, func.count().label("cnt"))
                .where(*spec.clauses())
                .group_by(Accident.hour, Accident.day_of_week)
            )
            return session.execute(stmt).all()

        rows = self._run(run)
        # rows without an hour/weekday have no cell but still count toward the total
        cells = [
            HeatmapCell(hour=r.hour, day_of_week=r.day_of_week, count=int(r.cnt))
            for r in rows
            if r.hour is not None and r.day_of_week is not None
        ]
        return TemporalHeatmapData(
            data=cells,
            max_count=max((c.count for c in cells), default=0),
            total_accidents=sum(int(r.cnt) for r in rows),
        )

    # --- filter options ------------------------------------------------------

    def get_filter_options(self) -> FilterOptions:
        return self.cache.get_or_set("filter-options", self._filter_options, FILTER_OPTIONS_TTL)

    def _filter_options(self) -> FilterOptions:
        def cities(session: Session) -> List[str]:
            stmt = (
                select(Accident.city).where(Accident.city.isnot(None))
                .distinct().order_by(Accident.city).limit(MAX_FILTER_CITIES)
            )
            return list(session.execute(stmt).scalars())

        def states(session: Session) -> List[str]:
            stmt = (
                select(Accident.state).where(Accident.state.isnot(None))
                .distinct().order_by(Accident.state)
            )
            return list(session.execute(stmt).scalars())

        city_list, state_list = self._gather(cities, states)
        return FilterOptions(cities=city_list, states=state_list)

    # --- hexbin map ----------------------------------------------------------

    def get_hexbin_map(self, filters: FilterSpec) -> HexbinMapData:
        spec = filters.only(*HEXBIN_FIELDS)
        key = spec.cache_key("hexbin", HEXBIN_FIELDS)
        return self.cache.get_or_set(key, lambda: self._hexbin_map(spec))

    def _hexbin_map(self, spec: FilterSpec) -> HexbinMapData:
        where = spec.clauses() + [Accident.start_lat.isnot(None), Accident.start_lng.isnot(None)]
        cell_lat = func.floor(Accident.start_lat / GRID_SIZE)
        cell_lng = func.floor(Accident.start_lng / GRID_SIZE)

        def points(session: Session):
            stmt = (
                select(cell_lat.label("cell_lat"), cell_lng.label("cell_lng"), func.count().label("cnt"))
                .where(*where)
                .group_by("cell_lat", "cell_lng")
            )
            return session.execute(stmt).all()

        def bounds(session: Session):
            stmt = select(
                func.min(Accident.start_lat), func.max(Accident.start_lat),
                func.min(Accident.start_lng), func.max(Accident.start_lng),
            ).where(*where)
            return session.execute(stmt).one()

        point_rows, bound_row = self._gather(points, bounds)

        pts = [
            HexbinPoint(
                lat=round(int(r.cell_lat) * GRID_SIZE + GRID_SIZE / 2, 6),
                lng=round(int(r.cell_lng) * GRID_SIZE + GRID_SIZE / 2, 6),
                count=int(r.cnt),
            )
            for r in point_rows
        ]
        if bound_row[0] is not None:
            box = Bounds(
                min_lat=float(bound_row[0]), max_lat=float(bound_row[1]),
                min_lng=float(bound_row[2]), max_lng=float(bound_row[3]),
            )
        else:
            box = Bounds(**DEFAULT_BOUNDS)

        return HexbinMapData(points=pts, bounds=box, total_accidents=sum(p.count for p in pts))

    # --- parallel coordinates ------------------------------------------------

    def get_parallel_coordinates(
        self, filters: FilterSpec, limit: Optional[int] = None
    ) -> ParallelCoordinatesData:
        """Weather attributes for an approximate random sample of accidents.

        A random key in the id domain picks the start of an id-ordered scan;
        when it lands within `limit` of the end, the scan wraps to ids below
        the key. Not a uniform sample: ids are not evenly spread and records
        just after the key are favoured. Ranges and totalCount cover the whole
        matching set, not the sample.
        """
        limit = limit if limit and limit > 0 else DEFAULT_SAMPLE_LIMIT
        spec = filters.only(*PCP_FIELDS)
        key = spec.cache_key("pcp", PCP_FIELDS, limit=limit)
        return self.cache.get_or_set(key, lambda: self._parallel_coordinates(spec, limit), SAMPLE_TTL)

    def _parallel_coordinates(self, spec: FilterSpec, limit: int) -> ParallelCoordinatesData:
        where = spec.clauses()
        columns = [getattr(Accident, f) for f in WEATHER_FIELDS] + [Accident.severity]
        start = self.sample_key_factory()

        def sample(op, n: int) -> Callable[[Session], list]:
            def run(session: Session):
                stmt = (
                    select(*columns).where(*where, op(Accident.id, start))
                    .order_by(Accident.id).limit(n)
                )
                return session.execute(stmt).all()
            return run

        def ranges(session: Session):
            aggs = []
            for f in WEATHER_FIELDS:
                col = getattr(Accident, f)
                aggs.extend([func.min(col), func.max(col)])
            return session.execute(select(*aggs).where(*where)).one()

        total, rows, range_row = self._gather(
            self._count(spec), sample(lambda c, k: c >= k, limit), ranges
        )
        rows = list(rows)
        if len(rows) < limit:
            rows.extend(self._run(sample(lambda c, k: c < k, limit - len(rows))))

        def num(v) -> Optional[float]:
            return float(v) if v is not None else None

        data = [
            WeatherAccidentPoint(
                temperature=num(r[0]), humidity=num(r[1]), pressure=num(r[2]),
                visibility=num(r[3]), wind_speed=num(r[4]), severity=int(r[5]),
            )
            for r in rows
        ]

        range_values: Dict[str, ValueRange] = {}
        for i, f in enumerate(WEATHER_FIELDS):
            lo, hi = range_row[2 * i], range_row[2 * i + 1]
            d_lo, d_hi = DEFAULT_RANGES[f]
            range_values[f] = ValueRange(
                min=float(lo) if lo is not None else d_lo,
                max=float(hi) if hi is not None else d_hi,
            )

        return ParallelCoordinatesData(
            data=data, ranges=WeatherRanges(**range_values), total_count=total
        )

    # --- treemap -------------------------------------------------------------

    def get_treemap(self, filters: FilterSpec) -> TreemapData:
        spec = filters.only(*TREEMAP_FIELDS)
        key = spec.cache_key("treemap", TREEMAP_FIELDS)
        return self.cache.get_or_set(key, lambda: self._treemap(spec))

    def _treemap(self, spec: FilterSpec) -> TreemapData:
        # a single state is small enough to go down to cities
        by_city = spec.state is not None
        group = [Accident.state, Accident.county] + ([Accident.city] if by_city else [])

        def run(session: Session):
            stmt = (
                select(*group, func.count().label("cnt"), func.sum(Accident.severity).label("sev"))
                .where(*spec.clauses())
                .group_by(*group)
            )
            return session.execute(stmt).all()

        # state -> county -> [(city, count, severity_sum)]
        tree: Dict[str, Dict[str, List[Tuple[Optional[str], int, float]]]] = defaultdict(lambda: defaultdict(list))
        for r in self._run(run):
            # county-level rows carry no city name and produce no city children
            city = (r.city or UNKNOWN_REGION) if by_city else None
            tree[r.state or UNKNOWN_REGION][r.county or UNKNOWN_REGION].append(
                (city, int(r.cnt), float(r.sev or 0))
            )

        def avg(sev_sum: float, count: int) -> float:
            return sev_sum / count if count else 0.0

        states: List[TreemapNode] = []
        total = 0
        total_sev = 0.0
        for state_name, counties in tree.items():
            county_nodes: List[TreemapNode] = []
            state_count = 0
            state_sev = 0.0
            for county_name, cities in counties.items():
                county_count = sum(c for _, c, _ in cities)
                county_sev = sum(s for _, _, s in cities)
                city_nodes = sorted(
                    (
                        TreemapNode(name=name, value=c, avg_severity=avg(s, c))
                        for name, c, s in cities if name is not None
                    ),
                    key=lambda n: n.value, reverse=True,
                )
                county_nodes.append(TreemapNode(
                    name=county_name,
                    value=county_count,
                    avg_severity=avg(county_sev, county_count),
                    children=city_nodes[:MAX_CITIES_PER_COUNTY] or None,
                ))
                state_count += county_count
                state_sev += county_sev

            county_nodes.sort(key=lambda n: n.value, reverse=True)
            states.append(TreemapNode(
                name=state_name,
                value=state_count,
                avg_severity=avg(state_sev, state_count),
                children=county_nodes[:MAX_COUNTIES_PER_STATE],
            ))
            total += state_count
            total_sev += state_sev

        states.sort(key=lambda n: n.value, reverse=True)
        root = TreemapNode(
            name=TREEMAP_ROOT, value=total, avg_severity=avg(total_sev, total), children=states
        )
        return TreemapData(data=root, total_accidents=total)

    # --- POI stacked bar -----------------------------------------------------

    def get_stacked_bar(self, filters: FilterSpec, poi_type: Optional[str] = None) -> StackedBarData:
        if poi_type is not None and poi_type.strip() and poi_type.strip().lower() != "all":
            poi_type = poi_type.strip()
            if poi_type not in POI_COLUMNS:
                raise InvalidFilter(
                    f"unknown poiType {poi_type!r}; expected one of {', '.join(POI_COLUMNS)}"
                )
            fields: Tuple[str, ...] = (poi_type,)
        else:
            poi_type = None
            fields = DEFAULT_POI_TYPES

        spec = filters.only(*TIME_FIELDS)
        key = spec.cache_key("stacked-bar", TIME_FIELDS, poi=poi_type)
        return self.cache.get_or_set(key, lambda: self._stacked_bar(spec, fields))

    def _stacked_bar(self, spec: FilterSpec, fields: Tuple[str, ...]) -> StackedBarData:
        where = spec.clauses()

        def per_flag(field: str) -> Callable[[Session], list]:
            col = POI_COLUMNS[field]

            def run(session: Session):
                stmt = (
                    select(Accident.severity, col.label("flag"), func.count().label("cnt"))
                    .where(*where)
                    .group_by(Accident.severity, col)
                )
                return session.execute(stmt).all()
            return run

        results = self._gather(*(per_flag(f) for f in fields))

        data: List[POICategory] = []
        for field, rows in zip(fields, results):
            present = SeverityBreakdown()
            absent = SeverityBreakdown()
            for r in rows:
                if r.severity not in (1, 2, 3, 4):
                    continue
                target = present if r.flag else absent
                attr = f"severity{r.severity}"
                setattr(target, attr, getattr(target, attr) + int(r.cnt))
                target.total += int(r.cnt)
            data.append(POICategory(category=poi_label(field), present=present, absent=absent))
        return StackedBarData(data=data)

    # --- scheduler -----------------------------------------------------------

    def warm_cache(self) -> None:
        """Prime the unfiltered dashboard views."""
        empty = FilterSpec()
        self.get_filter_options()
        self.get_temporal_heatmap(empty)
        self.get_hexbin_map(empty)
        self.get_treemap(empty)
        self.get_stacked_bar(empty)
