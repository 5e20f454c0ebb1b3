"""
Transaction model - a single income or expense event.

Invariants:
- amount >= 0
- kind is immutable once created
- profitability_ratio is derived, never set by the client
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from findriver.models.base import StoredModel


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Platform(str, Enum):
    UBER = "uber"
    DIDI = "didi"
    INDRIVE = "indrive"
    PRIVATE = "private"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# Embedded documents don't need StoredModel (no separate _id)
class TripExtras(BaseModel):
    tip: float = 0
    toll: float = 0
    parking: float = 0
    other: float = 0


class TripDetails(BaseModel):
    origin: Optional[str] = None
    destination: Optional[str] = None
    distance_km: Optional[float] = None
    duration_minutes: Optional[float] = None
    passengers: Optional[int] = None
    payment_method: Optional[str] = None  # cash | card | transfer | app
    extras: Optional[TripExtras] = None


class Transaction(StoredModel):
    user_id: str
    kind: TransactionKind
    amount: float
    date: datetime
    category: str = ""
    description: str = ""
    notes: Optional[str] = None
    platform: Platform = Platform.PRIVATE
    status: TransactionStatus = TransactionStatus.COMPLETED

    # Trip figures
    distance_km: Optional[float] = None
    duration_minutes: Optional[float] = None
    trip: Optional[TripDetails] = None

    # Derived
    profitability_ratio: Optional[float] = None

    created_by: str = "app"  # app | import

    def is_income(self) -> bool:
        return self.kind == TransactionKind.INCOME

    def trip_distance(self) -> float:
        """Distance attributed to this record, top-level field first."""
        if self.distance_km is not None:
            return self.distance_km
        if self.trip is not None and self.trip.distance_km is not None:
            return self.trip.distance_km
        return 0.0

    def extra_costs(self) -> float:
        """Toll plus parking paid on the trip."""
        if self.trip is None or self.trip.extras is None:
            return 0.0
        return (self.trip.extras.toll or 0) + (self.trip.extras.parking or 0)
