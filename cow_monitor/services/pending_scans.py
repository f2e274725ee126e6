"""
Short-lived RFID scans waiting to be linked to a cow.

An expiring map: a dict holds the live entries and a min-heap orders their
expirations so ``sweep`` only touches what has actually expired. Re-putting a
key leaves a stale heap item behind; ``sweep`` skips it by comparing tokens.
"""

from __future__ import annotations

import heapq
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

@dataclass(frozen=True)
class PendingScan:
    rfid_uid: str
    scanned_at: float
    expires_at: float

    def expired(self, now: float) -> bool:
        return self.expires_at < now

    def as_dict(self) -> dict:
        return {"rfid_uid": self.rfid_uid, "scanned_at": self.scanned_at, "expires_at": self.expires_at}

class PendingScanStore:
    def __init__(self, ttl_seconds: float = 600.0, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[str, PendingScan] = {}
        self._expirations: List[Tuple[float, str]] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def put(self, rfid_uid: str, ttl_seconds: Optional[float] = None) -> PendingScan:
        now = self.clock()
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        scan = PendingScan(rfid_uid=rfid_uid, scanned_at=now, expires_at=now + ttl)
        with self._lock:
            self._entries[rfid_uid] = scan
            heapq.heappush(self._expirations, (scan.expires_at, rfid_uid))
        return scan

    def get(self, rfid_uid: str) -> Optional[PendingScan]:
        with self._lock:
            scan = self._entries.get(rfid_uid)
            if scan is None:
                return None
            if scan.expired(self.clock()):
                del self._entries[rfid_uid]
                return None
            return scan

    def pending(self) -> List[PendingScan]:
        """Live scans, newest first."""
        now = self.clock()
        with self._lock:
            live = [scan for scan in self._entries.values() if not scan.expired(now)]
        return sorted(live, key=lambda s: s.scanned_at, reverse=True)

    def discard(self, rfid_uid: str) -> bool:
        with self._lock:
            return self._entries.pop(rfid_uid, None) is not None

    def sweep(self) -> int:
        """Drops every expired entry; returns how many were removed."""
        now = self.clock()
        removed = 0
        with self._lock:
            while self._expirations and self._expirations[0][0] < now:
                expires_at, rfid_uid = heapq.heappop(self._expirations)
                scan = self._entries.get(rfid_uid)
                if scan is not None and scan.expires_at == expires_at:
                    del self._entries[rfid_uid]
                    removed += 1
        return removed
