from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from .db import Base

def utcnow() -> datetime:
    # DateTime columns are naive and hold UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)

class Cow(Base):
    __tablename__ = "cows"

    id = Column(Integer, primary_key=True, index=True)
    cow_id = Column(String, unique=True, index=True, nullable=False)
    rfid_uid = Column(String, unique=True, nullable=True)

    name = Column(String, nullable=True)
    cow_type = Column(String, nullable=False, default="normal")
    breed = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)

    status = Column(String, nullable=False, default="active")  # active | sold | deceased
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("cow_type IN ('normal', 'pregnant', 'dry')", name="ck_cow_type"),
    )

class DailyLaneLog(Base):
    """One feeding/milking row per (date, lane, cow). Source of truth for monitoring."""

    __tablename__ = "daily_lane_log"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False)
    lane_no = Column(Integer, nullable=False)
    cow_id = Column(String, nullable=False)
    cow_type = Column(String, nullable=True)

    feed_given_kg = Column(Float, nullable=True)
    morning_yield_l = Column(Float, nullable=True)
    evening_yield_l = Column(Float, nullable=True)
    total_yield_l = Column(Float, nullable=True)  # morning + evening

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("date", "lane_no", "cow_id", name="uix_lane_log_date_lane_cow"),
        CheckConstraint("lane_no > 0", name="ck_lane_no_positive"),
        CheckConstraint("cow_type IN ('normal', 'pregnant', 'dry')", name="ck_lane_log_cow_type"),
        Index("idx_lane_log_date", "date"),
        Index("idx_lane_log_cow_date", "cow_id", "date"),
        Index("idx_lane_log_lane_date", "lane_no", "date"),
    )

# ---------------------------
# Derived monitoring tables (safe to drop and recompute)
# ---------------------------
class DailyCowMetric(Base):
    __tablename__ = "daily_cow_metrics"

    id = Column(Integer, primary_key=True, index=True)
    cow_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)

    feed_given_kg = Column(Float, nullable=True)
    milk_yield_litre = Column(Float, nullable=True)
    lane_id = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("cow_id", "date", name="uix_metric_cow_date"),
        Index("idx_metric_date", "date"),
    )

class CowDailyStatus(Base):
    __tablename__ = "cow_daily_status"

    id = Column(Integer, primary_key=True, index=True)
    cow_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)

    status = Column(String, nullable=False)
    reason = Column(Text, nullable=True)

    computed_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("cow_id", "date", name="uix_status_cow_date"),
        CheckConstraint("status IN ('NORMAL', 'SLIGHT_DROP', 'ATTENTION')", name="ck_status_value"),
        Index("idx_status_date", "date"),
    )

class DailyFarmSummary(Base):
    __tablename__ = "daily_farm_summary"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, unique=True, nullable=False)

    total_feed_kg = Column(Float, nullable=True)
    total_milk_litre = Column(Float, nullable=True)
    best_cow_id = Column(String, nullable=True)
    lowest_cow_id = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
