"""
Shift model - a work session bracketed by odometer readings.

States: open -> closed (terminal). Exactly one open shift per user.
dead_km is signed: trip distance above the odometer delta is reported, not
clamped.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from findriver.models.base import StoredModel


class ShiftState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class Shift(StoredModel):
    user_id: str
    state: ShiftState = ShiftState.OPEN

    odometer_start: float
    odometer_end: Optional[float] = None

    # Set at close time
    total_km: Optional[float] = None
    trip_km: Optional[float] = None
    dead_km: Optional[float] = None
    trip_count: int = 0
    trip_income: float = 0.0

    started_at: datetime
    ended_at: Optional[datetime] = None

    def is_open(self) -> bool:
        return self.state == ShiftState.OPEN
