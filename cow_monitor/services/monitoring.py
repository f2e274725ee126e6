"""
Read-side views for the monitoring screens.

Every view refreshes the derived tables it depends on before reading them
(compute-on-read); the raw lane log stays the only source of truth.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from ..enums import CowStatus, Metric
from ..models import Cow, CowDailyStatus, DailyCowMetric, DailyFarmSummary
from ..utils.logging import get_logger
from .aggregation import sync_daily_metrics, sync_farm_summary
from .baseline import WINDOW_DAYS, seven_day_average, window_start
from .event_store import history_totals, range_sum, sum_cow_day
from .status import calculate_cow_status

logger = get_logger(__name__)

TREND_DAYS = 14

class CowNotFoundError(LookupError):
    def __init__(self, cow_id: str):
        super().__init__(f"Cow {cow_id} not found.")
        self.cow_id = cow_id

class InvalidDateRangeError(ValueError):
    pass

def resolve_date(on: Optional[date]) -> date:
    """Requests without a date mean the server's local today."""
    return on or date.today()

def _active_cow_ids(db: Session) -> List[str]:
    rows = db.query(Cow.cow_id).filter(Cow.status == "active").order_by(Cow.cow_id).all()
    return [r.cow_id for r in rows]

# ---------------------------
# Dashboard
# ---------------------------
def get_dashboard(db: Session, on: Optional[date] = None) -> Dict[str, Any]:
    target = resolve_date(on)
    summary = sync_farm_summary(db, target)

    cow_ids = _active_cow_ids(db)
    statuses = [calculate_cow_status(db, cow_id, target, commit=False) for cow_id in cow_ids]
    db.commit()

    attention = sum(1 for s in statuses if s.status == CowStatus.ATTENTION)
    ratio = round(summary.total_milk / summary.total_feed, 2) if summary.total_feed > 0 else 0

    logger.info("dashboard_built", date=target.isoformat(), cows=len(cow_ids), attention=attention)
    return {
        "date": target.isoformat(),
        "total_cows": len(cow_ids),
        "total_milk": round(summary.total_milk, 2),
        "total_feed": round(summary.total_feed, 2),
        "yield_feed_ratio": ratio,
        "low_yield_count": attention,
    }

# ---------------------------
# Cow list + detail
# ---------------------------
def get_cows_list(db: Session, on: Optional[date] = None) -> List[Dict[str, Any]]:
    target = resolve_date(on)
    sync_daily_metrics(db, target)

    rows = (
        db.query(
            Cow.cow_id,
            DailyCowMetric.milk_yield_litre,
            DailyCowMetric.feed_given_kg,
            CowDailyStatus.status,
        )
        .outerjoin(DailyCowMetric, and_(DailyCowMetric.cow_id == Cow.cow_id, DailyCowMetric.date == target))
        .outerjoin(CowDailyStatus, and_(CowDailyStatus.cow_id == Cow.cow_id, CowDailyStatus.date == target))
        .filter(Cow.status == "active")
        .order_by(Cow.cow_id)
        .all()
    )

    cows = []
    for r in rows:
        status = r.status
        if status is None:
            status = calculate_cow_status(db, r.cow_id, target).status.value
        cows.append({
            "cow_id": r.cow_id,
            "today_milk": float(r.milk_yield_litre or 0.0),
            "today_feed": float(r.feed_given_kg or 0.0),
            "status": status,
        })
    return cows

def get_cow_detail(db: Session, cow_id: str, on: Optional[date] = None) -> Dict[str, Any]:
    target = resolve_date(on)
    cow = db.query(Cow).filter(Cow.cow_id == cow_id).first()
    if not cow:
        raise CowNotFoundError(cow_id)

    today = sum_cow_day(db, cow_id, target)
    avg_milk = seven_day_average(db, cow_id, target, Metric.MILK)
    avg_feed = seven_day_average(db, cow_id, target, Metric.FEED)

    history = range_sum(db, cow_id, window_start(target, WINDOW_DAYS), target)
    trend = range_sum(db, cow_id, window_start(target, TREND_DAYS), target, require_milk=True)

    return {
        "cow_id": cow.cow_id,
        "tag_id": cow.rfid_uid or cow.cow_id,
        "name": cow.name,
        "date": target.isoformat(),
        "today": {"milk": today.milk, "feed": today.feed},
        "seven_day_average": round(avg_milk, 2),
        "seven_day_average_feed": round(avg_feed, 2),
        "seven_day_history": [
            {"date": d.date.isoformat(), "milk": d.milk, "feed": d.feed} for d in history
        ],
        "yield_trend": [{"date": d.date.isoformat(), "milk": d.milk} for d in trend],
    }

# ---------------------------
# Farm summary + history
# ---------------------------
def _read_summary(db: Session, on: date) -> Optional[DailyFarmSummary]:
    return db.query(DailyFarmSummary).filter(DailyFarmSummary.date == on).first()

def get_daily_summary(db: Session, on: date) -> Dict[str, Any]:
    summary = _read_summary(db, on)
    if summary is None:
        sync_farm_summary(db, on)
        summary = _read_summary(db, on)

    return {
        "date": summary.date.isoformat(),
        "total_feed": float(summary.total_feed_kg or 0.0),
        "total_milk": float(summary.total_milk_litre or 0.0),
        "best_cow_id": summary.best_cow_id,
        "lowest_cow_id": summary.lowest_cow_id,
    }

def get_history_log(db: Session, start: date, end: date) -> List[Dict[str, Any]]:
    if start > end:
        raise InvalidDateRangeError(f"from ({start.isoformat()}) must not be after to ({end.isoformat()}).")

    return [
        {
            "date": r.date.isoformat(),
            "cow_id": r.cow_id,
            "feed": float(r.feed or 0.0),
            "milk": float(r.milk or 0.0),
            "lane": str(r.last_lane) if r.last_lane is not None else "-",
        }
        for r in history_totals(db, start, end)
    ]
