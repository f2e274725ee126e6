from __future__ import annotations

import random
from datetime import date, timedelta
from typing import List, Optional
from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from cow_monitor.db import Base, engine, SessionLocal
from cow_monitor.enums import MilkSession
from cow_monitor.models import Cow, CowDailyStatus, DailyCowMetric, DailyFarmSummary, DailyLaneLog
from cow_monitor.services.lane_log import record_feed, record_milk_yield

random.seed(42)

MORNING_SHARE = 0.55

# Fixed demo cows (IDs you can reference during presentations)
DEMO_COWS = [
    # A) Stable producer -> NORMAL
    dict(cow_id="DEMO-A-HEALTHY", name="Bella", cow_type="normal", lane=1, base=22.0),
    # B) Today at ~87% of her week -> SLIGHT_DROP
    dict(cow_id="DEMO-B-SLIGHT", name="Daisy", cow_type="normal", lane=2, base=20.0),
    # C) Sharp drop today -> ATTENTION (below 80%)
    dict(cow_id="DEMO-C-DROP", name="Rosie", cow_type="pregnant", lane=3, base=20.0),
    # D) Fed today but never milked -> ATTENTION (no yield)
    dict(cow_id="DEMO-D-NOYIELD", name="Molly", cow_type="normal", lane=4, base=18.0),
    # E) Moves between lanes 5 and 6 every third day
    dict(cow_id="DEMO-E-LANES", name="Lulu", cow_type="normal", lane=5, base=19.0),
]

RANDOM_HERD_SIZE = 20

def random_herd_ids(n_cows: int = RANDOM_HERD_SIZE) -> List[str]:
    return [f"COW-{2000+i}" for i in range(n_cows)]

def sample_cow_ids(n_cows: int = RANDOM_HERD_SIZE) -> List[str]:
    return [c["cow_id"] for c in DEMO_COWS] + random_herd_ids(n_cows)

def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

def record_day(db: Session, cow_id: str, lanes, rec_date: date, feed: float, milk: Optional[float]):
    share = round(feed / len(lanes), 2)
    for lane in lanes:
        record_feed(db, lane, cow_id, share, on=rec_date)
    if milk is None:
        return
    morning = round(milk * MORNING_SHARE, 2)
    record_milk_yield(db, cow_id, MilkSession.MORNING, morning, on=rec_date)
    record_milk_yield(db, cow_id, MilkSession.EVENING, round(milk - morning, 2), on=rec_date)

def demo_milk(cow_id: str, base: float, days_ago: int) -> Optional[float]:
    if days_ago > 0:
        return base
    if cow_id == "DEMO-B-SLIGHT":
        return 17.0
    if cow_id == "DEMO-C-DROP":
        return 12.0
    if cow_id == "DEMO-D-NOYIELD":
        return None
    return base

def seed_scenarios(db: Session, days: int = 30, today: Optional[date] = None):
    today = today or date.today()
    start = today - timedelta(days=days - 1)

    for c in DEMO_COWS:
        db.add(Cow(
            cow_id=c["cow_id"],
            name=c["name"],
            cow_type=c["cow_type"],
            breed="Holstein",
            date_of_birth=today - relativedelta(years=random.randint(3, 6), months=random.randint(0, 11)),
        ))
    db.commit()

    for d in range(days):
        rec_date = start + timedelta(days=d)
        days_ago = (today - rec_date).days
        for c in DEMO_COWS:
            lanes = [c["lane"]]
            if c["cow_id"] == "DEMO-E-LANES" and d % 3 == 0:
                lanes = [c["lane"], c["lane"] + 1]
            milk = demo_milk(c["cow_id"], c["base"], days_ago)
            record_day(db, c["cow_id"], lanes, rec_date, feed=20.0, milk=milk)

def seed_random_herd(db: Session, n_cows: int = RANDOM_HERD_SIZE, days: int = 30, today: Optional[date] = None):
    today = today or date.today()
    start = today - timedelta(days=days - 1)
    cow_types = ["normal", "normal", "normal", "pregnant", "dry"]

    herd = []
    for cow_id in random_herd_ids(n_cows):
        lane = 10 + len(herd)
        cow_type = random.choice(cow_types)
        db.add(Cow(
            cow_id=cow_id,
            cow_type=cow_type,
            breed=random.choice(["Holstein", "Jersey", "Holstein"]),
            date_of_birth=today - relativedelta(years=random.randint(2, 7), months=random.randint(0, 11)),
        ))
        herd.append((cow_id, cow_type, lane))
    db.commit()

    underperformers = set(random.sample([h[0] for h in herd], k=max(2, n_cows // 6)))

    for cow_id, cow_type, lane in herd:
        base = 0.0 if cow_type == "dry" else random.uniform(16.0, 28.0)
        for d in range(days):
            rec_date = start + timedelta(days=d)
            feed = max(0.0, random.uniform(17.0, 24.0) + random.gauss(0, 1.0))
            milk = None
            if base > 0:
                milk = max(0.0, base + random.gauss(0, 1.5))
                if cow_id in underperformers and d >= days - 3:
                    milk *= random.uniform(0.6, 0.85)
            record_day(db, cow_id, [lane], rec_date, feed=feed, milk=milk)

def remove_sample_data(db: Session, n_cows: int = RANDOM_HERD_SIZE) -> int:
    """
    Deletes the seeded cows together with their lane log and derived rows.

    Only the exact ids the seed functions create are touched; ``n_cows`` must
    match the size passed to ``seed_random_herd``.
    """
    sample = [c.cow_id for c in db.query(Cow).filter(Cow.cow_id.in_(sample_cow_ids(n_cows))).all()]
    if not sample:
        return 0
    for model in (DailyLaneLog, DailyCowMetric, CowDailyStatus):
        db.query(model).filter(model.cow_id.in_(sample)).delete(synchronize_session=False)
    db.query(DailyFarmSummary).delete(synchronize_session=False)
    db.query(Cow).filter(Cow.cow_id.in_(sample)).delete(synchronize_session=False)
    db.commit()
    return len(sample)

def main():
    reset_db()
    db = SessionLocal()
    try:
        seed_scenarios(db, days=30)
        seed_random_herd(db, days=30)
        print("Seed complete: scenario-based demo cows + random herd created.")
        print("Demo cow IDs:")
        print("  " + ", ".join(c["cow_id"] for c in DEMO_COWS))
    finally:
        db.close()

if __name__ == "__main__":
    main()
