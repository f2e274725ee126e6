"""
Shared fixtures: an in-memory SQLite database rebuilt per test, a session on
it, and a TestClient whose ``get_db`` dependency yields that same session.
"""

import os
from datetime import date, timedelta
from typing import Iterable, Optional

import pytest

# Must be set before anything imports cow_monitor.db
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEV_MODE"] = "true"
os.environ["LOG_LEVEL"] = "warning"

from fastapi.testclient import TestClient

from cow_monitor.db import Base, SessionLocal, engine, get_db
from cow_monitor.main import app
from cow_monitor.models import Cow, DailyLaneLog

TARGET = date(2025, 3, 14)


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def add_cow(db, cow_id: str, status: str = "active", **overrides) -> Cow:
    cow = Cow(cow_id=cow_id, status=status, **overrides)
    db.add(cow)
    db.commit()
    return cow


def add_log(
    db,
    cow_id: str,
    on: date,
    lane_no: int = 1,
    feed: Optional[float] = None,
    morning: Optional[float] = None,
    evening: Optional[float] = None,
    total: Optional[float] = None,
) -> DailyLaneLog:
    """Writes a raw lane log row directly; ``total`` defaults to morning + evening."""
    if total is None and (morning is not None or evening is not None):
        total = (morning or 0.0) + (evening or 0.0)
    row = DailyLaneLog(
        date=on,
        lane_no=lane_no,
        cow_id=cow_id,
        cow_type="normal",
        feed_given_kg=feed,
        morning_yield_l=morning,
        evening_yield_l=evening,
        total_yield_l=total,
    )
    db.add(row)
    db.commit()
    return row


def add_milk_series(db, cow_id: str, end: date, yields: Iterable[Optional[float]], lane_no: int = 1, feed: float = 20.0):
    """One row per day ending on ``end``; ``None`` skips the day entirely."""
    yields = list(yields)
    start = end - timedelta(days=len(yields) - 1)
    for i, y in enumerate(yields):
        if y is None:
            continue
        add_log(db, cow_id, start + timedelta(days=i), lane_no=lane_no, feed=feed, total=y, morning=y)
