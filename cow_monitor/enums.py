from __future__ import annotations

from enum import Enum

class CowType(str, Enum):
    NORMAL = "normal"
    PREGNANT = "pregnant"
    DRY = "dry"

class CowStatus(str, Enum):
    NORMAL = "NORMAL"
    SLIGHT_DROP = "SLIGHT_DROP"
    ATTENTION = "ATTENTION"

class MilkSession(str, Enum):
    MORNING = "morning"
    EVENING = "evening"

class Metric(str, Enum):
    MILK = "milk"
    FEED = "feed"
