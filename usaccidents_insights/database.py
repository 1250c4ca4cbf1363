#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/database.py
# Purpose: SQLAlchemy engine/session factory.
#
# Description of code and how it works:
# - make_engine() builds an engine with pool_pre_ping/pool_recycle.
# - SQLite engines get check_same_thread=False (queries fan out to a
#   thread pool) and a floor() SQL function for the hexbin grid.
# - The default engine is created on first use from DATABASE_URL.
#
# Author: Tim Canady
# Created: 2025-09-28
#
# Version: 1.0.0
# Last Modified: 2025-11-03 by Tim Canady
#
# Revision History:
# - 1.0.0 (2025-11-03): Lazy default engine; SQLite floor() for dev databases.
# - 0.6.0 (2025-10-04): Ensure `get_db` generator and explicit exports; robust env loading.
# - 0.5.0 (2025-09-28): MySQL engine options / pool_pre_ping.
###################################################################
#
from typing import Generator, Optional
import math

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session

from .config import get_settings

Base = declarative_base()

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _sqlite_floor(value):
    if value is None:
        return None
    return math.floor(value)


def make_engine(url: str, **kwargs) -> Engine:
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_recycle", 3600)

    engine = create_engine(url, pool_pre_ping=True, future=True, **kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _register_functions(dbapi_conn, _record):
            dbapi_conn.create_function("floor", 1, _sqlite_floor)

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        url = get_settings().database_url
        if not url:
            raise RuntimeError("DATABASE_URL must be set in environment or .env")
        _engine = make_engine(url)
    return _engine


def SessionLocal() -> Session:
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())
    return _session_factory()


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
