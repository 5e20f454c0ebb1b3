from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from findriver.models.transaction import (
    Platform,
    TransactionKind,
    TransactionStatus,
    TripDetails,
)


class TransactionCreate(BaseModel):
    """Transaction creation schema."""
    kind: TransactionKind
    amount: float = Field(..., ge=0)
    description: str = Field("", max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    date: Optional[datetime] = None
    platform: Platform = Platform.PRIVATE
    distance_km: Optional[float] = Field(None, ge=0)
    duration_minutes: Optional[float] = Field(None, ge=0)
    trip: Optional[TripDetails] = None
    notes: Optional[str] = None


class TransactionUpdate(BaseModel):
    """Editable fields only; kind is immutable."""
    amount: Optional[float] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    date: Optional[datetime] = None
    status: Optional[TransactionStatus] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class TransactionResponse(BaseModel):
    """Transaction response schema."""
    id: str = Field(validation_alias="_id", serialization_alias="id")
    user_id: str
    kind: TransactionKind
    amount: float
    date: datetime
    category: str
    description: str
    platform: Platform
    status: TransactionStatus
    notes: Optional[str] = None
    distance_km: Optional[float] = None
    duration_minutes: Optional[float] = None
    trip: Optional[TripDetails] = None
    profitability_ratio: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )


class ImportRow(BaseModel):
    """One already-parsed import row."""
    kind: str
    amount: float
    description: str = ""
    category: str = ""
    date: Optional[datetime] = None


class ImportRequest(BaseModel):
    rows: List[ImportRow]


class ImportResponse(BaseModel):
    imported: int
    errors: int
    transactions: List[TransactionResponse] = []
