"""Pytest configuration: throwaway SQLite stores and a service with a fake clock."""
from __future__ import annotations

import os
import tempfile

# must be in place before the app module configures logging / scheduler
os.environ.setdefault("ACCIDENTS_LOG_DIR", tempfile.mkdtemp(prefix="usaccidents-logs-"))
os.environ["ACCIDENTS_CACHE_WARM_MINUTES"] = "0"

from datetime import datetime

import pytest

from usaccidents_insights.cache import TTLCache
from usaccidents_insights.database import Base, make_engine, make_session_factory
from usaccidents_insights.models import Accident
from usaccidents_insights.service import AccidentService


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_accident(id, severity=2, start_time=datetime(2021, 3, 1, 8, 30), **kwargs) -> Accident:
    """Accident row with the derived time columns filled from start_time."""
    fields = dict(
        year=start_time.year,
        month=start_time.month,
        hour=start_time.hour,
        day_of_week=start_time.strftime("%A"),
        state="CA",
        county="Los Angeles",
        city="Los Angeles",
    )
    fields.update(kwargs)
    return Accident(id=str(id), severity=severity, start_time=start_time, **fields)


@pytest.fixture
def make_accident():
    return build_accident


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'accidents.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def seed(session_factory):
    def _seed(*rows):
        with session_factory() as session:
            session.add_all(rows)
            session.commit()
    return _seed


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(session_factory, clock):
    svc = AccidentService(
        session_factory,
        cache=TTLCache(clock=clock),
        sample_key_factory=lambda: "0",
    )
    yield svc
    svc.close()


@pytest.fixture
def broken_service(tmp_path, clock):
    """Service pointed at a database with no accidents table."""
    eng = make_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    svc = AccidentService(make_session_factory(eng), cache=TTLCache(clock=clock))
    yield svc
    svc.close()
    eng.dispose()
