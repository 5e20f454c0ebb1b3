"""Validation for ledger and shift inputs, applied before anything is persisted."""
from datetime import datetime, timezone
from typing import Dict, Optional

from findriver.core.exceptions import InvalidOdometer, ValidationError
from findriver.models.transaction import TransactionKind


EDITABLE_FIELDS = {"amount", "description", "category", "date", "status", "notes"}
# Editable fields that may not be cleared
REQUIRED_FIELDS = EDITABLE_FIELDS - {"notes"}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_transaction_fields(
    fields: Dict,
    now: Optional[datetime] = None,
    partial: bool = False
) -> None:
    """
    Validate transaction fields.

    Rules:
    - amount must be non-negative
    - kind must be income or expense (creation only)
    - date must not be in the future
    - trip distance and duration must be non-negative

    Collects every failure and raises one ValidationError with per-field detail.
    """
    now = now or datetime.now(timezone.utc)
    errors: Dict[str, str] = {}

    if not partial or "kind" in fields:
        kind = fields.get("kind")
        if isinstance(kind, TransactionKind):
            kind = kind.value
        if kind not in {k.value for k in TransactionKind}:
            errors["kind"] = f"Invalid kind: {kind!r}"

    if not partial or "amount" in fields:
        amount = fields.get("amount")
        if amount is None:
            errors["amount"] = "Amount is required"
        elif amount < 0:
            errors["amount"] = f"Amount must be non-negative: {amount}"

    date = fields.get("date")
    if date is not None and _as_utc(date) > now:
        errors["date"] = "Date cannot be in the future"

    for name in ("distance_km", "duration_minutes"):
        value = fields.get(name)
        if value is not None and value < 0:
            errors[name] = f"{name} must be non-negative: {value}"

    if errors:
        raise ValidationError("Invalid transaction", errors)


def validate_update_fields(changes: Dict, now: Optional[datetime] = None) -> None:
    """Only the editable subset may change; kind in particular is immutable."""
    forbidden = set(changes) - EDITABLE_FIELDS
    if forbidden:
        raise ValidationError(
            "Fields cannot be updated",
            {name: "Field is not editable" for name in sorted(forbidden)}
        )
    cleared = sorted(name for name in REQUIRED_FIELDS if name in changes and changes[name] is None)
    if cleared:
        raise ValidationError(
            "Fields cannot be cleared",
            {name: "Field cannot be null" for name in cleared}
        )
    validate_transaction_fields(changes, now=now, partial=True)


def validate_odometer(odometer_start: float, odometer_end: Optional[float] = None) -> None:
    """Odometer readings are non-negative and never go backwards."""
    if odometer_start < 0:
        raise ValidationError(
            "Invalid odometer reading",
            {"odometer_start": "Odometer reading must be non-negative"}
        )
    if odometer_end is not None and odometer_end < odometer_start:
        raise InvalidOdometer(
            "Final odometer is below the starting reading",
            {"odometer_end": f"{odometer_end} < {odometer_start}"}
        )
