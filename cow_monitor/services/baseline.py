from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy.orm import Session

from ..enums import Metric
from .event_store import window_stats

WINDOW_DAYS = 7

@dataclass(frozen=True)
class Baseline:
    cow_id: str
    metric: Metric
    start: date
    end: date
    total: float
    rows: int

    @property
    def average(self) -> float:
        # fixed-length window: days without data still count in the denominator
        if self.rows == 0:
            return 0.0
        return self.total / WINDOW_DAYS

def window_start(target: date, days: int = WINDOW_DAYS) -> date:
    """First day of the inclusive trailing window of ``days`` days ending on ``target``."""
    return target - timedelta(days=days - 1)

def load_baseline(db: Session, cow_id: str, target: date, metric: Metric) -> Baseline:
    start = window_start(target)
    total, rows = window_stats(db, cow_id, start, target, metric)
    return Baseline(cow_id=cow_id, metric=Metric(metric), start=start, end=target, total=total, rows=rows)

def seven_day_average(db: Session, cow_id: str, target: date, metric: Metric = Metric.MILK) -> float:
    return load_baseline(db, cow_id, target, metric).average
