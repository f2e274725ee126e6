"""
Rolls the raw lane log up into the derived per-cow and farm-wide tables.

Both syncs are full recomputations from ``daily_lane_log``: re-running them,
even concurrently for the same date, converges on the same rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..db import upsert
from ..models import DailyCowMetric, DailyFarmSummary
from ..utils.logging import get_logger
from .event_store import best_and_lowest_cow, day_aggregate_all_cows, farm_totals

logger = get_logger(__name__)

@dataclass(frozen=True)
class FarmTotals:
    date: date
    total_feed: float
    total_milk: float
    best_cow_id: Optional[str]
    lowest_cow_id: Optional[str]

def sync_daily_metrics(db: Session, on: date) -> int:
    rows = day_aggregate_all_cows(db, on)
    for r in rows:
        upsert(
            db,
            DailyCowMetric,
            values={
                "cow_id": r.cow_id,
                "date": on,
                "feed_given_kg": r.feed,
                "milk_yield_litre": r.milk,
                "lane_id": str(r.last_lane) if r.last_lane is not None else None,
            },
            conflict_cols=["cow_id", "date"],
            update_cols=["feed_given_kg", "milk_yield_litre", "lane_id"],
        )
    db.commit()

    logger.info("daily_metrics_synced", date=on.isoformat(), cows=len(rows))
    return len(rows)

def sync_farm_summary(db: Session, on: date) -> FarmTotals:
    sync_daily_metrics(db, on)

    total_feed, total_milk = farm_totals(db, on)
    best_cow_id, lowest_cow_id = best_and_lowest_cow(db, on)

    upsert(
        db,
        DailyFarmSummary,
        values={
            "date": on,
            "total_feed_kg": total_feed,
            "total_milk_litre": total_milk,
            "best_cow_id": best_cow_id,
            "lowest_cow_id": lowest_cow_id,
        },
        conflict_cols=["date"],
        update_cols=["total_feed_kg", "total_milk_litre", "best_cow_id", "lowest_cow_id"],
    )
    db.commit()

    logger.info(
        "farm_summary_synced",
        date=on.isoformat(),
        total_feed=total_feed,
        total_milk=total_milk,
        best_cow_id=best_cow_id,
        lowest_cow_id=lowest_cow_id,
    )
    return FarmTotals(
        date=on,
        total_feed=total_feed,
        total_milk=total_milk,
        best_cow_id=best_cow_id,
        lowest_cow_id=lowest_cow_id,
    )
