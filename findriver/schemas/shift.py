from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from findriver.models.shift import ShiftState


class ShiftStartRequest(BaseModel):
    odometer: float = Field(..., ge=0)


class ShiftEndRequest(BaseModel):
    odometer: float = Field(..., ge=0)


class ShiftResponse(BaseModel):
    """Shift response schema."""
    id: str = Field(validation_alias="_id", serialization_alias="id")
    user_id: str
    state: ShiftState
    odometer_start: float
    odometer_end: Optional[float] = None
    total_km: Optional[float] = None
    trip_km: Optional[float] = None
    dead_km: Optional[float] = None
    trip_count: int = 0
    trip_income: float = 0.0
    started_at: datetime
    ended_at: Optional[datetime] = None

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )
