import logging
from datetime import datetime
from typing import Any, Dict, Optional

from pymongo.errors import DuplicateKeyError

from findriver.core.exceptions import ShiftAlreadyOpen
from findriver.db.store import Eq, Range
from findriver.models.shift import Shift, ShiftState
from findriver.repositories.collection import CollectionView, FetchResult, Page, SortSpec

logger = logging.getLogger(__name__)


class ShiftRepository(CollectionView[Shift]):
    """Shift database operations."""

    collection_name = "shifts"
    model = Shift

    async def find_open(self, user_id: str) -> Optional[Shift]:
        """The user's open shift, if any."""
        result = await self.fetch(
            [Eq("user_id", user_id), Eq("state", ShiftState.OPEN.value)],
            limit=1
        )
        if result.items:
            return result.items[0]
        return None

    async def create(self, shift: Shift) -> Shift:
        """
        Insert an open shift.

        The partial unique index on open shifts rejects a second concurrent
        insert for the same user; that is reported as ShiftAlreadyOpen.
        """
        try:
            doc = await self.store.insert(self.collection_name, shift.to_document())
        except DuplicateKeyError as exc:
            logger.warning("Concurrent open shift rejected for user %s", shift.user_id)
            raise ShiftAlreadyOpen("User already has an open shift") from exc
        return Shift(**doc)

    async def close(self, shift_id: str, user_id: str, changes: Dict[str, Any]) -> Optional[Shift]:
        """Apply closing fields only if the shift is still open."""
        doc = await self.store.update(
            self.collection_name,
            shift_id,
            user_id,
            changes,
            guard=[Eq("state", ShiftState.OPEN.value)]
        )
        if doc:
            return Shift(**doc)
        return None

    async def closed_in_window(self, user_id: str, start: datetime, end: datetime) -> FetchResult[Shift]:
        """Closed shifts whose start falls inside [start, end]."""
        return await self.fetch([
            Eq("user_id", user_id),
            Eq("state", ShiftState.CLOSED.value),
            Range("started_at", gte=start, lte=end)
        ])

    async def list_shifts(self, user_id: str, page: int = 1, page_size: Optional[int] = None) -> Page[Shift]:
        return await self.list_page(
            [Eq("user_id", user_id)],
            page=page,
            page_size=page_size,
            sort=SortSpec(field="started_at", descending=True)
        )
