#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/models.py
# Purpose: ORM model (SQLAlchemy 2.x) for the US-Accidents record table.
#
# Description of code and how it works:
# - Defines Accident with derived time columns (year/month/hour/day_of_week)
#   and the POI boolean flags used by the stacked bar.
# - Indexes cover the grouped aggregates the dashboard issues.
#
# Author: Tim Canady
# Created: 2025-09-28
#
# Version: 1.0.0
# Last Modified: 2025-11-03 by Tim Canady
#
# Revision History:
# - 1.0.0 (2025-11-03): Accident table replaces incidents/roads.
# - 0.6.3 (2025-10-07): Widen incidents.direction to VARCHAR(32).
###################################################################
#
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, Text, Index
)
from .database import Base


class Accident(Base):
    __tablename__ = "accidents"

    # UUID-like, sortable; cursor pagination and sampling rely on its index
    id = Column(String(64), primary_key=True)
    severity = Column(Integer, nullable=False, index=True)

    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    year = Column(Integer, nullable=True)
    month = Column(Integer, nullable=True)
    hour = Column(Integer, nullable=True)
    day_of_week = Column(String(16), nullable=True)

    start_lat = Column(Float, nullable=True)
    start_lng = Column(Float, nullable=True)
    description = Column(Text, nullable=True)
    street = Column(String(255), nullable=True)
    city = Column(String(128), nullable=True)
    county = Column(String(128), nullable=True)
    state = Column(String(8), nullable=True)
    zipcode = Column(String(16), nullable=True)

    temperature = Column(Float, nullable=True)
    humidity = Column(Float, nullable=True)
    pressure = Column(Float, nullable=True)
    visibility = Column(Float, nullable=True)
    wind_speed = Column(Float, nullable=True)
    weather_condition = Column(String(64), nullable=True)

    junction = Column(Boolean, nullable=True)
    traffic_signal = Column(Boolean, nullable=True)
    stop = Column(Boolean, nullable=True)
    crossing = Column(Boolean, nullable=True)
    bump = Column(Boolean, nullable=True)
    give_way = Column(Boolean, nullable=True)
    railway = Column(Boolean, nullable=True)
    station = Column(Boolean, nullable=True)
    amenity = Column(Boolean, nullable=True)

    __table_args__ = (
        Index("idx_state_county_city", "state", "county", "city"),
        Index("idx_hour_day_of_week", "hour", "day_of_week"),
        Index("idx_year_month", "year", "month"),
        Index("idx_poi_junction", "junction", "severity"),
        Index("idx_poi_traffic_signal", "traffic_signal", "severity"),
        Index("idx_poi_stop", "stop", "severity"),
        Index("idx_poi_crossing", "crossing", "severity"),
        Index("idx_poi_bump", "bump", "severity"),
    )
