from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..db import upsert
from ..enums import CowStatus, Metric
from ..models import CowDailyStatus, utcnow
from ..utils.logging import get_logger
from .baseline import seven_day_average
from .event_store import sum_cow_day

logger = get_logger(__name__)

ATTENTION_RATIO = 0.8
SLIGHT_DROP_RATIO = 0.9

REASONS = {
    "NO_YIELD": "No yield recorded",
    "BELOW_80": "Yield dropped below 80%",
    "MINOR_DROP": "Minor yield drop",
}

@dataclass(frozen=True)
class Classification:
    status: CowStatus
    reason: Optional[str] = None

@dataclass(frozen=True)
class StatusResult:
    cow_id: str
    date: date
    status: CowStatus
    reason: Optional[str]
    today_milk: float
    today_feed: float
    seven_day_avg: float
    lane_id: Optional[str]

def classify(today_milk: float, seven_day_avg: float) -> Classification:
    """
    Today's milk against the trailing average. First matching rule wins and
    every comparison is strict. Feed intake plays no part.
    """
    if seven_day_avg == 0:
        if today_milk == 0:
            return Classification(CowStatus.ATTENTION, REASONS["NO_YIELD"])
        # first day with a yield on record
        return Classification(CowStatus.NORMAL)

    if today_milk == 0:
        return Classification(CowStatus.ATTENTION, REASONS["NO_YIELD"])
    if today_milk < ATTENTION_RATIO * seven_day_avg:
        return Classification(CowStatus.ATTENTION, REASONS["BELOW_80"])
    if today_milk < SLIGHT_DROP_RATIO * seven_day_avg:
        return Classification(CowStatus.SLIGHT_DROP, REASONS["MINOR_DROP"])
    return Classification(CowStatus.NORMAL)

def store_status(db: Session, cow_id: str, on: date, result: Classification) -> None:
    upsert(
        db,
        CowDailyStatus,
        values={
            "cow_id": cow_id,
            "date": on,
            "status": result.status.value,
            "reason": result.reason,
            "computed_at": utcnow(),
        },
        conflict_cols=["cow_id", "date"],
        update_cols=["status", "reason", "computed_at"],
    )

def calculate_cow_status(db: Session, cow_id: str, on: date, commit: bool = True) -> StatusResult:
    today = sum_cow_day(db, cow_id, on)
    avg = seven_day_average(db, cow_id, on, Metric.MILK)

    result = classify(today.milk, avg)
    store_status(db, cow_id, on, result)
    if commit:
        db.commit()

    logger.debug(
        "cow_status_computed",
        cow_id=cow_id,
        date=on.isoformat(),
        status=result.status.value,
        today_milk=today.milk,
        seven_day_avg=round(avg, 3),
    )

    return StatusResult(
        cow_id=cow_id,
        date=on,
        status=result.status,
        reason=result.reason,
        today_milk=today.milk,
        today_feed=today.feed,
        seven_day_avg=avg,
        lane_id=str(today.last_lane) if today.last_lane is not None else None,
    )
