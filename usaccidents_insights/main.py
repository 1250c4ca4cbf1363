#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/main.py
# Purpose: FastAPI app (dashboard API + cache warm-up scheduler)
#
# Description of code and how it works:
# - /accident router: paginated listing, record detail and the five
#   dashboard aggregates (heatmap, hexbin, parallel coordinates, treemap,
#   stacked bar) plus filter options.
# - Query-string values go through FilterSpec.from_params(); "all" means
#   no filter everywhere.
# - Errors come back as {statusCode, message, timestamp, path}.
# - A scheduler job re-primes the unfiltered views every few minutes.
#
# Author: Tim Canady
# Created: 2025-09-28
#
# Version: 1.1.0
# Last Modified: 2025-11-24 by Tim Canady
#
# Revision History:
# - 1.1.0 (2025-11-24): Record detail endpoint; structured error bodies.
# - 1.0.0 (2025-11-03): Dashboard endpoints replace incidents/ingest API.
# - 0.12.0 (2025-10-14): Added DriveTexas (TX) endpoints + optional scheduler job.
###################################################################
#

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from sqlalchemy import text
from sqlalchemy.orm import Session

from .cache import TTLCache
from .config import get_settings
from .database import SessionLocal, get_db
from .errors import AccidentsError
from .filters import FilterSpec
from .logging_config import setup_logging
from .schemas import (
    AccidentPage, FilterOptions, HexbinMapData, ParallelCoordinatesData,
    StackedBarData, TemporalHeatmapData, TreemapData,
)
from .service import DEFAULT_SAMPLE_LIMIT, AccidentService

# ------------------------------------------------------------------------------
# Logging
# ------------------------------------------------------------------------------

log = setup_logging()

# ------------------------------------------------------------------------------
# Service wiring
# ------------------------------------------------------------------------------

_service: Optional[AccidentService] = None


def get_service() -> AccidentService:
    global _service
    if _service is None:
        settings = get_settings()
        _service = AccidentService(
            SessionLocal,
            cache=TTLCache(settings.cache_default_ttl, max_entries=settings.cache_max_entries),
            max_workers=settings.query_workers,
            max_list_limit=settings.list_max_limit,
        )
    return _service


def _utc_ts() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None

# ------------------------------------------------------------------------------
# FastAPI / middleware
# ------------------------------------------------------------------------------

app = FastAPI(title="USAccidents Insights")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "x-lang"],
)
app.add_middleware(GZipMiddleware, minimum_size=1024)

# ------------------------------------------------------------------------------
# Error handling
# ------------------------------------------------------------------------------

def _error_response(request: Request, status: int, message: Any) -> JSONResponse:
    body = {
        "statusCode": status,
        "message": message,
        "timestamp": _utc_ts(),
        "path": request.url.path,
    }
    return JSONResponse(body, status_code=status)


@app.exception_handler(AccidentsError)
async def _accidents_error(request: Request, exc: AccidentsError):
    if exc.status_code >= 500:
        log.error("[HTTP] status=%s path=%s err=%s", exc.status_code, request.url.path, exc.message)
        return _error_response(request, exc.status_code, "Internal server error")
    log.warning("[HTTP] status=%s path=%s err=%s", exc.status_code, request.url.path, exc.message)
    return _error_response(request, exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in exc.errors()
    )
    log.warning("[HTTP] status=400 path=%s err=%s", request.url.path, message)
    return _error_response(request, 400, message)


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    return _error_response(request, exc.status_code, exc.detail)


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception):
    log.exception("[HTTP] status=500 path=%s err=%s", request.url.path, exc)
    return _error_response(request, 500, "Internal server error")

# ------------------------------------------------------------------------------
# Root / health
# ------------------------------------------------------------------------------

@app.get("/")
def _root():
    return {"message": "USAccidents Insights API", "docs": "/docs"}


@app.get("/healthz")
def healthz(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"ok": True, "ts": _utc_ts()}

# ------------------------------------------------------------------------------
# Accident endpoints
# ------------------------------------------------------------------------------

router = APIRouter(prefix="/accident", tags=["accident"])


@router.get("", response_model=AccidentPage)
def accidents_list(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    cursor: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    city: Optional[str] = Query(default=None),
    severity: Optional[str] = Query(default=None),
    service: AccidentService = Depends(get_service),
):
    filters = FilterSpec.from_params(
        {"search": search, "state": state, "city": city, "severity": severity}
    )
    return service.list_accidents(filters, page=page, limit=limit, cursor=cursor or None)


@router.get("/temporal-heatmap", response_model=TemporalHeatmapData)
def temporal_heatmap(
    city: Optional[str] = None,
    state: Optional[str] = None,
    year: Optional[str] = None,
    month: Optional[str] = None,
    dayOfWeek: Optional[str] = None,
    timeOfDay: Optional[str] = None,
    service: AccidentService = Depends(get_service),
):
    filters = FilterSpec.from_params({
        "city": city, "state": state, "year": year, "month": month,
        "dayOfWeek": dayOfWeek, "timeOfDay": timeOfDay,
    })
    return service.get_temporal_heatmap(filters)


@router.get("/filter-options", response_model=FilterOptions)
def filter_options(service: AccidentService = Depends(get_service)):
    return service.get_filter_options()


@router.get("/hexbin-map", response_model=HexbinMapData)
def hexbin_map(
    state: Optional[str] = None,
    year: Optional[str] = None,
    month: Optional[str] = None,
    dayOfWeek: Optional[str] = None,
    timeOfDay: Optional[str] = None,
    service: AccidentService = Depends(get_service),
):
    filters = FilterSpec.from_params({
        "state": state, "year": year, "month": month,
        "dayOfWeek": dayOfWeek, "timeOfDay": timeOfDay,
    })
    return service.get_hexbin_map(filters)


@router.get("/parallel-coordinates", response_model=ParallelCoordinatesData)
def parallel_coordinates(
    severity: Optional[str] = None,
    limit: Optional[str] = None,
    year: Optional[str] = None,
    month: Optional[str] = None,
    dayOfWeek: Optional[str] = None,
    timeOfDay: Optional[str] = None,
    service: AccidentService = Depends(get_service),
):
    filters = FilterSpec.from_params({
        "severity": severity, "year": year, "month": month,
        "dayOfWeek": dayOfWeek, "timeOfDay": timeOfDay,
    })
    return service.get_parallel_coordinates(filters, limit=_parse_int(limit) or DEFAULT_SAMPLE_LIMIT)


@router.get("/treemap", response_model=TreemapData, response_model_exclude_none=True)
def treemap(
    state: Optional[str] = None,
    year: Optional[str] = None,
    month: Optional[str] = None,
    dayOfWeek: Optional[str] = None,
    timeOfDay: Optional[str] = None,
    service: AccidentService = Depends(get_service),
):
    filters = FilterSpec.from_params({
        "state": state, "year": year, "month": month,
        "dayOfWeek": dayOfWeek, "timeOfDay": timeOfDay,
    })
    return service.get_treemap(filters)


@router.get("/stacked-bar", response_model=StackedBarData)
def stacked_bar(
    poiType: Optional[str] = None,
    year: Optional[str] = None,
    month: Optional[str] = None,
    dayOfWeek: Optional[str] = None,
    timeOfDay: Optional[str] = None,
    service: AccidentService = Depends(get_service),
):
    filters = FilterSpec.from_params({
        "year": year, "month": month, "dayOfWeek": dayOfWeek, "timeOfDay": timeOfDay,
    })
    return service.get_stacked_bar(filters, poi_type=poiType)


# declared last so the fixed paths above win
@router.get("/{accident_id}")
def accident_detail(accident_id: str, service: AccidentService = Depends(get_service)) -> Dict[str, Any]:
    return service.get_accident(accident_id)


app.include_router(router)

# ------------------------------------------------------------------------------
# Scheduler
# ------------------------------------------------------------------------------

scheduler = AsyncIOScheduler()


async def _scheduled_cache_warm():
    try:
        log.info("[SYNC] cache_warm_start ts=%s", _utc_ts())
        await run_in_threadpool(get_service().warm_cache)
        log.info("[SYNC] cache_warm_success")
    except Exception as e:
        log.exception("[SYNC] cache_warm_error err=%s", e)


@app.on_event("startup")
async def _startup():
    minutes = get_settings().cache_warm_minutes
    if minutes > 0:
        scheduler.add_job(
            _scheduled_cache_warm, "interval", minutes=minutes,
            id="cache_warm", next_run_time=datetime.now(),
        )
        scheduler.start()


@app.on_event("shutdown")
async def _shutdown():
    if scheduler.running:
        scheduler.shutdown(wait=False)
    if _service is not None:
        _service.close()
