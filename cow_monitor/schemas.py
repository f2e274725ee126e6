from __future__ import annotations
from datetime import date
from pydantic import BaseModel, Field
from typing import Optional

from .enums import CowType, MilkSession

class CowCreate(BaseModel):
    cow_id: str = Field(..., min_length=1)
    rfid_uid: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = None
    cow_type: CowType = Field(default=CowType.NORMAL)
    breed: Optional[str] = None
    date_of_birth: Optional[date] = None

class FeedRecordCreate(BaseModel):
    lane_no: int = Field(..., gt=0)
    cow_id: str = Field(..., min_length=1)
    feed_kg: float = Field(..., ge=0)
    cow_type: Optional[CowType] = None  # falls back to the cow's master data

class MilkYieldCreate(BaseModel):
    cow_id: str = Field(..., min_length=1)
    session: MilkSession
    yield_l: float = Field(..., ge=0)

class PendingScanCreate(BaseModel):
    rfid_uid: str = Field(..., min_length=1)
    ttl_minutes: Optional[float] = Field(default=None, gt=0, le=60)
