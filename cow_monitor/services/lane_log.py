"""
Write side of the daily lane log.

Lane is the anchor: one row per (date, lane, cow). Feed is recorded at lane
entry (Flow A) and milk sessions are recorded later the same day (Flow B).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from ..enums import CowType, MilkSession
from ..models import Cow, DailyLaneLog, utcnow
from ..utils.logging import get_logger

logger = get_logger(__name__)

YIELD_FIELDS = ("morning_yield_l", "evening_yield_l")

class NoLaneEntryError(LookupError):
    def __init__(self, cow_id: str, on: date):
        super().__init__(f"No entry found for cow {cow_id} on {on.isoformat()}. Please record feed first.")
        self.cow_id = cow_id
        self.on = on

@dataclass(frozen=True)
class LaneLogPatch:
    """Partial update of a lane log row. ``None`` means "leave as is"."""

    feed_given_kg: Optional[float] = None
    morning_yield_l: Optional[float] = None
    evening_yield_l: Optional[float] = None

    def present(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    @property
    def touches_yield(self) -> bool:
        return any(getattr(self, name) is not None for name in YIELD_FIELDS)

def total_yield(morning: Optional[float], evening: Optional[float]) -> Optional[float]:
    if morning is None and evening is None:
        return None
    return (morning or 0.0) + (evening or 0.0)

def apply_patch(row: DailyLaneLog, patch: LaneLogPatch) -> DailyLaneLog:
    for name, value in patch.present().items():
        setattr(row, name, value)
    if patch.touches_yield:
        row.total_yield_l = total_yield(row.morning_yield_l, row.evening_yield_l)
    return row

def entry_for(db: Session, lane_no: int, cow_id: str, on: Optional[date] = None) -> Optional[DailyLaneLog]:
    on = on or date.today()
    return (
        db.query(DailyLaneLog)
        .filter(DailyLaneLog.date == on)
        .filter(DailyLaneLog.lane_no == lane_no)
        .filter(DailyLaneLog.cow_id == cow_id)
        .first()
    )

def entries_for_day(db: Session, on: Optional[date] = None) -> List[DailyLaneLog]:
    on = on or date.today()
    return (
        db.query(DailyLaneLog)
        .filter(DailyLaneLog.date == on)
        .order_by(DailyLaneLog.lane_no, DailyLaneLog.cow_id)
        .all()
    )

def upsert_lane_log(
    db: Session,
    on: date,
    lane_no: int,
    cow_id: str,
    cow_type: Optional[str],
    patch: LaneLogPatch,
) -> DailyLaneLog:
    row = entry_for(db, lane_no, cow_id, on)
    if row is None:
        row = DailyLaneLog(date=on, lane_no=lane_no, cow_id=cow_id, cow_type=cow_type)
        db.add(row)
    else:
        row.updated_at = utcnow()

    apply_patch(row, patch)
    db.commit()
    db.refresh(row)
    return row

def _cow_type_for(db: Session, cow_id: str) -> str:
    cow = db.query(Cow).filter(Cow.cow_id == cow_id).first()
    if cow and cow.cow_type:
        return cow.cow_type
    return CowType.NORMAL.value

def record_feed(
    db: Session,
    lane_no: int,
    cow_id: str,
    feed_kg: float,
    cow_type: Optional[str] = None,
    on: Optional[date] = None,
) -> DailyLaneLog:
    on = on or date.today()
    cow_type = cow_type or _cow_type_for(db, cow_id)

    row = upsert_lane_log(db, on, lane_no, cow_id, cow_type, LaneLogPatch(feed_given_kg=feed_kg))
    logger.info("feed_recorded", cow_id=cow_id, lane_no=lane_no, date=on.isoformat(), feed_kg=feed_kg)
    return row

def record_milk_yield(
    db: Session,
    cow_id: str,
    session: MilkSession,
    yield_l: float,
    on: Optional[date] = None,
) -> List[DailyLaneLog]:
    """Applies the session yield to every lane the cow used that day."""
    on = on or date.today()
    session = MilkSession(session)

    rows = (
        db.query(DailyLaneLog)
        .filter(DailyLaneLog.date == on, DailyLaneLog.cow_id == cow_id)
        .order_by(DailyLaneLog.lane_no)
        .all()
    )
    if not rows:
        raise NoLaneEntryError(cow_id, on)

    patch = LaneLogPatch(**{f"{session.value}_yield_l": yield_l})
    for row in rows:
        apply_patch(row, patch)
        row.updated_at = utcnow()
    db.commit()

    logger.info(
        "milk_yield_recorded",
        cow_id=cow_id,
        session=session.value,
        date=on.isoformat(),
        yield_l=yield_l,
        lanes=[r.lane_no for r in rows],
    )
    return rows
