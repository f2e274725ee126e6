from __future__ import annotations

import asyncio
import contextlib
import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional

import structlog
from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from .config import get_settings
from .db import Base, engine, get_db
from .models import Cow, DailyLaneLog
from .schemas import CowCreate, FeedRecordCreate, MilkYieldCreate, PendingScanCreate
from .services import monitoring
from .services.lane_log import NoLaneEntryError, entries_for_day, entry_for, record_feed, record_milk_yield
from .services.pending_scans import PendingScanStore
from .utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

async def _sweep_pending_scans(store: PendingScanStore, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        removed = store.sweep()
        if removed:
            logger.info("pending_scans_swept", removed=removed, remaining=len(store))

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.state.pending_scans = PendingScanStore(ttl_seconds=settings.rfid_ttl_minutes * 60)
    sweeper = asyncio.create_task(_sweep_pending_scans(app.state.pending_scans, settings.rfid_sweep_interval_seconds))
    logger.info("application_startup", version=app.version, database=engine.url.render_as_string(hide_password=True))
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        logger.info("application_shutdown")

app = FastAPI(title="Cow Lane Monitor", version="0.5.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
Base.metadata.create_all(bind=engine)

@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response

def get_pending_scans(request: Request) -> PendingScanStore:
    return request.app.state.pending_scans

def _lane_log_dict(r: DailyLaneLog) -> dict:
    return {
        "date": r.date.isoformat(),
        "lane_no": r.lane_no,
        "cow_id": r.cow_id,
        "cow_type": r.cow_type,
        "feed_given_kg": r.feed_given_kg,
        "morning_yield_l": r.morning_yield_l,
        "evening_yield_l": r.evening_yield_l,
        "total_yield_l": r.total_yield_l,
    }

@app.get("/")
def root():
    return {"service": "Cow Lane Monitor API", "docs": "/docs", "health": "/health"}

@app.get("/health")
def health():
    return {"ok": True}

# ---------------------------
# Cows
# ---------------------------
@app.get("/cows")
def list_cows(db: Session = Depends(get_db)):
    cows = db.query(Cow).order_by(Cow.cow_id).all()
    return [
        {
            "cow_id": c.cow_id,
            "rfid_uid": c.rfid_uid,
            "name": c.name,
            "cow_type": c.cow_type,
            "breed": c.breed,
            "date_of_birth": c.date_of_birth.isoformat() if c.date_of_birth else None,
            "status": c.status,
        }
        for c in cows
    ]

@app.post("/cows")
def create_cow(payload: CowCreate, db: Session = Depends(get_db)):
    existing = db.query(Cow).filter(Cow.cow_id == payload.cow_id).first()
    if existing:
        raise HTTPException(status_code=409, detail="cow_id already exists.")
    if payload.rfid_uid and db.query(Cow).filter(Cow.rfid_uid == payload.rfid_uid).first():
        raise HTTPException(status_code=409, detail="rfid_uid already linked to another cow.")

    cow = Cow(
        cow_id=payload.cow_id,
        rfid_uid=payload.rfid_uid,
        name=payload.name,
        cow_type=payload.cow_type.value,
        breed=payload.breed,
        date_of_birth=payload.date_of_birth,
    )
    db.add(cow)
    db.commit()
    return {"created": True, "cow_id": cow.cow_id}

# ---------------------------
# Lane log (feed + milk recording)
# ---------------------------
@app.post("/lane-log/feed")
def post_feed(payload: FeedRecordCreate, db: Session = Depends(get_db)):
    row = record_feed(
        db,
        lane_no=payload.lane_no,
        cow_id=payload.cow_id,
        feed_kg=payload.feed_kg,
        cow_type=payload.cow_type.value if payload.cow_type else None,
    )
    return {"message": "Feed recorded successfully", "data": _lane_log_dict(row)}

@app.post("/lane-log/milk-yield")
def post_milk_yield(payload: MilkYieldCreate, db: Session = Depends(get_db)):
    try:
        rows = record_milk_yield(db, cow_id=payload.cow_id, session=payload.session, yield_l=payload.yield_l)
    except NoLaneEntryError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {
        "message": f"{payload.session.value} yield recorded successfully",
        "data": [_lane_log_dict(r) for r in rows],
    }

@app.get("/lane-log/today")
def lane_log_today(db: Session = Depends(get_db)):
    return {"data": [_lane_log_dict(r) for r in entries_for_day(db)]}

@app.get("/lane-log/entry")
def lane_log_entry(
    lane_no: int = Query(..., gt=0),
    cow_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    row = entry_for(db, lane_no, cow_id)
    return {"data": _lane_log_dict(row) if row else None}

# ---------------------------
# Monitoring
# ---------------------------
@app.get("/monitoring/dashboard")
def monitoring_dashboard(
    on: Optional[date] = Query(default=None, alias="date", description="YYYY-MM-DD, defaults to today"),
    db: Session = Depends(get_db),
):
    return monitoring.get_dashboard(db, on)

@app.get("/monitoring/cows")
def monitoring_cows(
    on: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
):
    return monitoring.get_cows_list(db, on)

@app.get("/monitoring/cows/{cow_id}")
def monitoring_cow_detail(
    cow_id: str,
    on: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
):
    try:
        return monitoring.get_cow_detail(db, cow_id, on)
    except monitoring.CowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@app.get("/monitoring/summary")
def monitoring_summary(
    on: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
):
    if on is None:
        raise HTTPException(status_code=400, detail="Date parameter is required")
    return monitoring.get_daily_summary(db, on)

@app.get("/monitoring/history")
def monitoring_history(
    start: Optional[date] = Query(default=None, alias="from"),
    end: Optional[date] = Query(default=None, alias="to"),
    db: Session = Depends(get_db),
):
    if start is None or end is None:
        raise HTTPException(status_code=400, detail="From and to date parameters are required")
    try:
        return monitoring.get_history_log(db, start, end)
    except monitoring.InvalidDateRangeError as e:
        raise HTTPException(status_code=400, detail=str(e))

# ---------------------------
# Pending RFID scans (tag linking)
# ---------------------------
@app.post("/rfid/pending")
def register_pending_scan(
    payload: PendingScanCreate,
    store: PendingScanStore = Depends(get_pending_scans),
    db: Session = Depends(get_db),
):
    linked = db.query(Cow).filter(Cow.rfid_uid == payload.rfid_uid).first()
    if linked:
        raise HTTPException(status_code=409, detail=f"RFID already linked to cow {linked.cow_id}.")

    ttl = payload.ttl_minutes * 60 if payload.ttl_minutes else None
    scan = store.put(payload.rfid_uid, ttl_seconds=ttl)
    logger.info("pending_scan_registered", rfid_uid=scan.rfid_uid, expires_at=scan.expires_at)
    return {"data": scan.as_dict()}

@app.get("/rfid/pending")
def list_pending_scans(store: PendingScanStore = Depends(get_pending_scans)):
    return {"data": [s.as_dict() for s in store.pending()]}

@app.get("/rfid/pending/{rfid_uid}")
def get_pending_scan(rfid_uid: str, store: PendingScanStore = Depends(get_pending_scans)):
    scan = store.get(rfid_uid)
    if scan is None:
        raise HTTPException(status_code=404, detail="Pending scan not found or expired.")
    return {"data": scan.as_dict()}

@app.delete("/rfid/pending/{rfid_uid}")
def delete_pending_scan(rfid_uid: str, store: PendingScanStore = Depends(get_pending_scans)):
    return {"deleted": store.discard(rfid_uid)}

@app.post("/cows/{cow_id}/rfid/{rfid_uid}")
def link_rfid(
    cow_id: str,
    rfid_uid: str,
    store: PendingScanStore = Depends(get_pending_scans),
    db: Session = Depends(get_db),
):
    cow = db.query(Cow).filter(Cow.cow_id == cow_id).first()
    if not cow:
        raise HTTPException(status_code=404, detail="Cow not found.")
    other = db.query(Cow).filter(Cow.rfid_uid == rfid_uid, Cow.cow_id != cow_id).first()
    if other:
        raise HTTPException(status_code=409, detail=f"RFID already linked to cow {other.cow_id}.")

    cow.rfid_uid = rfid_uid
    db.commit()
    store.discard(rfid_uid)
    logger.info("rfid_linked", cow_id=cow_id, rfid_uid=rfid_uid)
    return {"linked": True, "cow_id": cow_id, "rfid_uid": rfid_uid}
