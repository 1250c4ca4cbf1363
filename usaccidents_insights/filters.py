#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/filters.py
# Purpose: Normalize raw query-string filters into a typed FilterSpec.
#
# Description of code and how it works:
# - FilterSpec.from_params() takes untyped strings (as they arrive on the
#   query string), treats "all"/empty as absent and drops values that do not
#   parse instead of rejecting the request.
# - clauses() turns the spec into parameterized SQLAlchemy predicates;
#   absent filters produce no predicate at all.
# - cache_key() renders a stable "op|field=value|..." string with "all"
#   standing in for absent values.
#
# Author: Tim Canady
# Created: 2025-11-03
#
# Version: 1.1.0
# Last Modified: 2025-11-17 by Tim Canady
#
# Revision History:
# - 1.1.0 (2025-11-17): Escaped LIKE patterns for city/search.
# - 1.0.0 (2025-11-03): Initial normalizer.
###################################################################
#
from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict
from sqlalchemy import and_, or_

from .models import Accident

ALL = "all"

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
TIMES_OF_DAY = ("day", "night")

# daytime is hour in [DAY_START, DAY_END)
DAY_START = 6
DAY_END = 18

# fixed order for cache keys
FIELD_ORDER = (
    "search", "state", "city", "severity",
    "year", "month", "day_of_week", "time_of_day",
)

TIME_FIELDS = ("year", "month", "day_of_week", "time_of_day")


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    if not s or s.lower() == ALL:
        return None
    return s


def _parse_int(value: Any) -> Optional[int]:
    s = _clean(value)
    if s is None:
        return None
    try:
        return int(s)
    except ValueError:
        return None


class FilterSpec(BaseModel):
    """Closed set of optional predicates for accident queries."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    search: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    severity: Optional[int] = None
    year: Optional[int] = None
    month: Optional[int] = None
    day_of_week: Optional[str] = None
    time_of_day: Optional[str] = None

    @classmethod
    def from_params(cls, params: Optional[Mapping[str, Any]] = None) -> "FilterSpec":
        """Build a spec from raw query parameters.

        Accepts both the wire names (dayOfWeek, timeOfDay) and the field
        names. Unknown keys are ignored.
        """
        params = params or {}

        def pick(*names: str) -> Any:
            for name in names:
                if params.get(name) is not None:
                    return params[name]
            return None

        severity = _parse_int(pick("severity"))
        if severity is not None and not 1 <= severity <= 4:
            severity = None

        month = _parse_int(pick("month"))
        if month is not None and not 1 <= month <= 12:
            month = None

        day = _clean(pick("dayOfWeek", "day_of_week"))
        if day is not None:
            day = day.capitalize()
            if day not in WEEKDAYS:
                day = None

        tod = _clean(pick("timeOfDay", "time_of_day"))
        if tod is not None:
            tod = tod.lower()
            if tod not in TIMES_OF_DAY:
                tod = None

        return cls(
            search=_clean(pick("search")),
            state=_clean(pick("state")),
            city=_clean(pick("city")),
            severity=severity,
            year=_parse_int(pick("year")),
            month=month,
            day_of_week=day,
            time_of_day=tod,
        )

    def only(self, *fields: str) -> "FilterSpec":
        """Copy keeping just the given fields; the rest become absent."""
        return FilterSpec(**{f: getattr(self, f) for f in fields})

    def clauses(self, model=Accident) -> List[Any]:
        out: List[Any] = []
        if self.search is not None:
            out.append(or_(
                model.city.contains(self.search, autoescape=True),
                model.state.contains(self.search, autoescape=True),
                model.county.contains(self.search, autoescape=True),
            ))
        if self.state is not None:
            out.append(model.state == self.state)
        if self.city is not None:
            out.append(model.city.contains(self.city, autoescape=True))
        if self.severity is not None:
            out.append(model.severity == self.severity)
        if self.year is not None:
            out.append(model.year == self.year)
        if self.month is not None:
            out.append(model.month == self.month)
        if self.day_of_week is not None:
            out.append(model.day_of_week == self.day_of_week)
        if self.time_of_day == "day":
            out.append(and_(model.hour >= DAY_START, model.hour < DAY_END))
        elif self.time_of_day == "night":
            out.append(or_(model.hour >= DAY_END, model.hour < DAY_START))
        return out

    def cache_key(self, operation: str, fields: Sequence[str] = FIELD_ORDER, **extra: Any) -> str:
        parts = [operation]
        for name in FIELD_ORDER:
            if name in fields:
                value = getattr(self, name)
                parts.append(f"{name}={ALL if value is None else value}")
        for name in sorted(extra):
            value = extra[name]
            parts.append(f"{name}={ALL if value is None else value}")
        return "|".join(parts)
