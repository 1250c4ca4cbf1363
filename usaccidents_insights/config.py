#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/config.py
# Purpose: Environment-driven settings.
#
# Description of code and how it works:
# - Loads .env once, reads every knob with os.getenv and freezes the result.
# - Bad numeric values fall back to the documented default.
#
# Author: Tim Canady
# Created: 2025-11-03
#
# Version: 1.1.0
# Last Modified: 2025-11-17 by Tim Canady
#
# Revision History:
# - 1.1.0 (2025-11-17): Cache warm-up interval + list limit cap.
# - 1.0.0 (2025-11-03): Initial settings bundle.
###################################################################
#
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str]
    log_dir: Optional[str]
    log_file: Optional[str]
    log_level: str
    cors_origins: List[str]
    cache_max_entries: int
    cache_default_ttl: float
    cache_warm_minutes: int
    query_workers: int
    list_max_limit: int


def load_settings() -> Settings:
    origins = os.getenv("ACCIDENTS_CORS_ORIGINS", "*")
    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        log_dir=os.getenv("ACCIDENTS_LOG_DIR"),
        log_file=os.getenv("ACCIDENTS_LOG_FILE"),
        log_level=os.getenv("ACCIDENTS_LOG_LEVEL", "INFO").upper(),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        cache_max_entries=max(1, _int_env("ACCIDENTS_CACHE_MAX_ENTRIES", 1024)),
        cache_default_ttl=_float_env("ACCIDENTS_CACHE_DEFAULT_TTL", 300.0),
        cache_warm_minutes=max(0, _int_env("ACCIDENTS_CACHE_WARM_MINUTES", 5)),
        query_workers=max(1, _int_env("ACCIDENTS_QUERY_WORKERS", 4)),
        list_max_limit=max(1, _int_env("ACCIDENTS_LIST_MAX_LIMIT", 200)),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
