import logging
from datetime import datetime, timezone
from typing import Optional

from findriver.core.exceptions import NoOpenShift, ShiftAlreadyOpen
from findriver.db.session import get_database
from findriver.db.store import RecordStore
from findriver.models.shift import Shift, ShiftState
from findriver.repositories.collection import Page
from findriver.repositories.shift_repo import ShiftRepository
from findriver.repositories.transaction_repo import TransactionRepository
from findriver.utils.transaction_validation import validate_odometer

logger = logging.getLogger(__name__)


class ShiftService:
    @staticmethod
    async def start(user_id: str, odometer_start: float, now: Optional[datetime] = None) -> Shift:
        """
        Open a new shift for the user.

        Raises ShiftAlreadyOpen when an open shift exists, either found by the
        read check or rejected by the unique open-shift index on insert.
        """
        validate_odometer(odometer_start)
        db = await get_database()
        shifts = ShiftRepository(RecordStore(db))

        if await shifts.find_open(user_id):
            raise ShiftAlreadyOpen("User already has an open shift")

        now = now or datetime.now(timezone.utc)
        shift = Shift(
            user_id=user_id,
            state=ShiftState.OPEN,
            odometer_start=odometer_start,
            started_at=now,
            created_at=now,
            updated_at=now
        )
        created = await shifts.create(shift)
        logger.info("Shift %s opened for user %s", created.id, user_id)
        return created

    @staticmethod
    async def current(user_id: str) -> Optional[Shift]:
        db = await get_database()
        return await ShiftRepository(RecordStore(db)).find_open(user_id)

    @staticmethod
    async def close(user_id: str, odometer_end: float, now: Optional[datetime] = None) -> Shift:
        """
        Close the user's open shift.

        Steps:
        1. Load the open shift (NoOpenShift if none)
        2. Reject an odometer below the starting reading (InvalidOdometer)
        3. Sum trip distance of income records dated since the shift started
        4. total_km = end - start, dead_km = total_km - trip_km (signed)
        5. Flip to closed only if still open
        """
        db = await get_database()
        store = RecordStore(db)
        shifts = ShiftRepository(store)

        shift = await shifts.find_open(user_id)
        if shift is None:
            raise NoOpenShift("No open shift")

        validate_odometer(shift.odometer_start, odometer_end)

        trips = await TransactionRepository(store).income_since(user_id, shift.started_at)
        if trips.truncated:
            logger.warning("Trip km for shift %s computed from a truncated batch", shift.id)

        trip_km = round(sum(tx.trip_distance() for tx in trips.items), 1)
        trip_income = sum(tx.amount for tx in trips.items)
        total_km = round(odometer_end - shift.odometer_start, 1)
        dead_km = round(total_km - trip_km, 1)

        now = now or datetime.now(timezone.utc)
        closed = await shifts.close(shift.id, user_id, {
            "state": ShiftState.CLOSED.value,
            "odometer_end": odometer_end,
            "total_km": total_km,
            "trip_km": trip_km,
            "dead_km": dead_km,
            "trip_count": len(trips.items),
            "trip_income": trip_income,
            "ended_at": now,
            "updated_at": now
        })
        if closed is None:
            # Closed by a concurrent request between the read and the write
            raise NoOpenShift("No open shift")

        if dead_km < 0:
            logger.info("Shift %s has negative dead km (%s)", shift.id, dead_km)
        return closed

    @staticmethod
    async def list(user_id: str, page: int = 1, page_size: Optional[int] = None) -> Page[Shift]:
        db = await get_database()
        return await ShiftRepository(RecordStore(db)).list_shifts(user_id, page, page_size)
