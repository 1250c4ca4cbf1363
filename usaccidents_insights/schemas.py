#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/schemas.py
# Purpose: Pydantic models (v2) for API payloads.
#
# Description of code and how it works:
# - Aggregate views use snake_case attributes and serialize camelCase
#   (dayOfWeek, maxCount, ...) to match the dashboard.
# - The listing envelope keeps total_page as-is and exposes
#   hasMore/nextCursor.
#
# Author: Tim Canady
# Created: 2025-09-28
#
# Version: 1.0.0
# Last Modified: 2025-11-03 by Tim Canady
#
# Revision History:
# - 1.0.0 (2025-11-03): Dashboard aggregate payloads replace incident/road models.
# - 0.6.0 (2025-10-04): Pydantic models for incidents and roads.
###################################################################
#
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Listing -------------------------------------------------------------------

class AccidentPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: List[Dict[str, Any]]
    total: int
    total_page: int
    page: int
    limit: int
    next: bool
    has_more: bool = Field(alias="hasMore")
    next_cursor: Optional[str] = Field(default=None, alias="nextCursor")


# --- Temporal heatmap ----------------------------------------------------------

class HeatmapCell(CamelModel):
    hour: int
    day_of_week: str
    count: int


class TemporalHeatmapData(CamelModel):
    data: List[HeatmapCell]
    max_count: int
    total_accidents: int


class FilterOptions(CamelModel):
    cities: List[str]
    states: List[str]


# --- Hexbin map ----------------------------------------------------------------

class HexbinPoint(CamelModel):
    lat: float
    lng: float
    count: int


class Bounds(CamelModel):
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float


class HexbinMapData(CamelModel):
    points: List[HexbinPoint]
    bounds: Bounds
    total_accidents: int


# --- Parallel coordinates ------------------------------------------------------

class WeatherAccidentPoint(CamelModel):
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    pressure: Optional[float] = None
    visibility: Optional[float] = None
    wind_speed: Optional[float] = None
    severity: int


class ValueRange(CamelModel):
    min: float
    max: float


class WeatherRanges(CamelModel):
    temperature: ValueRange
    humidity: ValueRange
    pressure: ValueRange
    visibility: ValueRange
    wind_speed: ValueRange


class ParallelCoordinatesData(CamelModel):
    data: List[WeatherAccidentPoint]
    ranges: WeatherRanges
    total_count: int


# --- Treemap -------------------------------------------------------------------

class TreemapNode(CamelModel):
    name: str
    value: int
    avg_severity: float
    children: Optional[List["TreemapNode"]] = None


class TreemapData(CamelModel):
    data: TreemapNode
    total_accidents: int


# --- POI stacked bar -----------------------------------------------------------

class SeverityBreakdown(CamelModel):
    severity1: int = 0
    severity2: int = 0
    severity3: int = 0
    severity4: int = 0
    total: int = 0


class POICategory(CamelModel):
    category: str
    present: SeverityBreakdown
    absent: SeverityBreakdown


class StackedBarData(CamelModel):
    data: List[POICategory]


TreemapNode.model_rebuild()
