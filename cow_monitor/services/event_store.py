"""
Read-side aggregation over the daily lane log.

Every query here is a grouped SUM over ``daily_lane_log``; the helpers differ
only in what they group by and how they filter, so they share ``_grouped``.
Nothing in this module writes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ..enums import Metric
from ..models import DailyLaneLog

@dataclass(frozen=True)
class CowDayTotals:
    cow_id: str
    feed: Optional[float]
    milk: Optional[float]
    last_lane: Optional[int]
    date: Optional[date] = None

@dataclass(frozen=True)
class DayTotals:
    date: date
    feed: float
    milk: float

_METRIC_COLUMNS = {
    Metric.MILK: DailyLaneLog.total_yield_l,
    Metric.FEED: DailyLaneLog.feed_given_kg,
}

def _as_float(value) -> Optional[float]:
    return float(value) if value is not None else None

def _grouped(db: Session, group_by: Sequence[str], *criteria) -> Query:
    cols = [getattr(DailyLaneLog, name) for name in group_by]
    return (
        db.query(
            *cols,
            func.sum(DailyLaneLog.feed_given_kg).label("feed"),
            func.sum(DailyLaneLog.total_yield_l).label("milk"),
            func.max(DailyLaneLog.lane_no).label("last_lane"),
        )
        .filter(*criteria)
        .group_by(*cols)
    )

def _in_range(start: date, end: date) -> list:
    return [DailyLaneLog.date >= start, DailyLaneLog.date <= end]

def sum_cow_day(db: Session, cow_id: str, on: date) -> CowDayTotals:
    """Feed and milk for one cow on one day; zeros when nothing was logged."""
    feed, milk, last_lane = (
        db.query(
            func.coalesce(func.sum(DailyLaneLog.feed_given_kg), 0.0),
            func.coalesce(func.sum(DailyLaneLog.total_yield_l), 0.0),
            func.max(DailyLaneLog.lane_no),
        )
        .filter(DailyLaneLog.cow_id == cow_id, DailyLaneLog.date == on)
        .one()
    )
    return CowDayTotals(cow_id=cow_id, feed=float(feed), milk=float(milk), last_lane=last_lane, date=on)

def range_sum(
    db: Session,
    cow_id: str,
    start: date,
    end: date,
    require_milk: bool = False,
) -> List[DayTotals]:
    criteria = [DailyLaneLog.cow_id == cow_id, *_in_range(start, end)]
    if require_milk:
        criteria.append(DailyLaneLog.total_yield_l.isnot(None))

    rows = _grouped(db, ["date"], *criteria).order_by(DailyLaneLog.date.asc()).all()
    return [DayTotals(date=r.date, feed=float(r.feed or 0.0), milk=float(r.milk or 0.0)) for r in rows]

def day_aggregate_all_cows(db: Session, on: date) -> List[CowDayTotals]:
    rows = _grouped(db, ["cow_id"], DailyLaneLog.date == on).order_by(DailyLaneLog.cow_id).all()
    return [
        CowDayTotals(cow_id=r.cow_id, feed=_as_float(r.feed), milk=_as_float(r.milk), last_lane=r.last_lane, date=on)
        for r in rows
    ]

def history_totals(db: Session, start: date, end: date) -> List[CowDayTotals]:
    rows = (
        _grouped(db, ["date", "cow_id"], *_in_range(start, end))
        .order_by(DailyLaneLog.date.desc(), DailyLaneLog.cow_id.asc())
        .all()
    )
    return [
        CowDayTotals(cow_id=r.cow_id, feed=_as_float(r.feed), milk=_as_float(r.milk), last_lane=r.last_lane, date=r.date)
        for r in rows
    ]

def window_stats(db: Session, cow_id: str, start: date, end: date, metric: Metric) -> Tuple[float, int]:
    """(sum, row count) of one metric over an inclusive window; nulls sum as 0."""
    col = _METRIC_COLUMNS[Metric(metric)]
    criteria = [DailyLaneLog.cow_id == cow_id, *_in_range(start, end)]
    if metric == Metric.MILK:
        criteria.append(col.isnot(None))

    total, count = (
        db.query(func.coalesce(func.sum(col), 0.0), func.count(DailyLaneLog.id))
        .filter(*criteria)
        .one()
    )
    return float(total), int(count)

def farm_totals(db: Session, on: date) -> Tuple[float, float]:
    feed, milk = (
        db.query(
            func.coalesce(func.sum(DailyLaneLog.feed_given_kg), 0.0),
            func.coalesce(func.sum(DailyLaneLog.total_yield_l), 0.0),
        )
        .filter(DailyLaneLog.date == on)
        .one()
    )
    return float(feed), float(milk)

def best_and_lowest_cow(db: Session, on: date) -> Tuple[Optional[str], Optional[str]]:
    """
    Highest and lowest summed yield for the day among cows with a recorded yield.
    Ties go to the smallest cow id in both directions.
    """
    milk = func.sum(DailyLaneLog.total_yield_l)
    base = (
        db.query(DailyLaneLog.cow_id)
        .filter(DailyLaneLog.date == on, DailyLaneLog.total_yield_l.isnot(None))
        .group_by(DailyLaneLog.cow_id)
    )
    best = base.order_by(milk.desc(), DailyLaneLog.cow_id.asc()).limit(1).first()
    lowest = base.order_by(milk.asc(), DailyLaneLog.cow_id.asc()).limit(1).first()
    return (best.cow_id if best else None, lowest.cow_id if lowest else None)
