import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from findriver.core.config import settings
from findriver.core.exceptions import NotFound, ValidationError
from findriver.db.session import get_database
from findriver.db.store import RecordStore
from findriver.models.transaction import Transaction, TransactionKind
from findriver.repositories.collection import Page
from findriver.repositories.transaction_repo import TransactionFilters, TransactionRepository
from findriver.utils.date_buckets import optional_window
from findriver.utils.transaction_validation import (
    validate_transaction_fields,
    validate_update_fields,
)

logger = logging.getLogger(__name__)


def profitability_ratio(transaction: Transaction) -> Optional[float]:
    """amount / (toll + parking) for trips that paid either; otherwise None."""
    if transaction.kind != TransactionKind.INCOME:
        return None
    cost = transaction.extra_costs()
    if cost > 0:
        return transaction.amount / cost
    return None


@dataclass
class ImportResult:
    imported: int = 0
    errors: int = 0
    transactions: List[Transaction] = field(default_factory=list)


async def _repository() -> TransactionRepository:
    db = await get_database()
    return TransactionRepository(RecordStore(db))


class LedgerService:
    @staticmethod
    async def create(user_id: str, fields: Dict[str, Any], now: Optional[datetime] = None) -> Transaction:
        """
        Validate and persist a transaction.

        The returned record is what the request layer forwards to the user's
        realtime channel.
        """
        now = now or datetime.now(timezone.utc)
        validate_transaction_fields(fields, now=now)

        data = dict(fields)
        data["user_id"] = user_id
        data["date"] = data.get("date") or now
        data["created_at"] = now
        data["updated_at"] = now
        data.pop("profitability_ratio", None)

        transaction = Transaction(**data)
        transaction.profitability_ratio = profitability_ratio(transaction)

        repo = await _repository()
        created = await repo.create(transaction)
        logger.debug("Transaction %s created for user %s", created.id, user_id)
        return created

    @staticmethod
    async def get(transaction_id: str, user_id: str) -> Transaction:
        repo = await _repository()
        transaction = await repo.get(transaction_id, user_id)
        if transaction is None:
            raise NotFound("Transaction not found")
        return transaction

    @staticmethod
    async def update(
        transaction_id: str,
        user_id: str,
        changes: Dict[str, Any],
        now: Optional[datetime] = None
    ) -> Transaction:
        now = now or datetime.now(timezone.utc)
        validate_update_fields(changes, now=now)

        repo = await _repository()
        existing = await repo.get(transaction_id, user_id)
        if existing is None:
            raise NotFound("Transaction not found")

        updates = dict(changes)
        if "amount" in updates:
            ratio = profitability_ratio(existing.model_copy(update={"amount": updates["amount"]}))
            if ratio is not None:
                updates["profitability_ratio"] = ratio
        updates["updated_at"] = now

        updated = await repo.update(transaction_id, user_id, updates)
        if updated is None:
            raise NotFound("Transaction not found")
        return updated

    @staticmethod
    async def delete(transaction_id: str, user_id: str) -> None:
        repo = await _repository()
        if not await repo.delete(transaction_id, user_id):
            raise NotFound("Transaction not found")

    @staticmethod
    async def list(
        user_id: str,
        filters: Optional[TransactionFilters] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None
    ) -> Page[Transaction]:
        """Calendar dates are read in the window timezone, like the stats endpoints."""
        filters = filters or TransactionFilters()
        start, end = optional_window(
            start_date,
            end_date,
            tz_name=settings.WINDOW_TIMEZONE,
            default_days=settings.DEFAULT_WINDOW_DAYS,
            today=today
        )
        if start is not None:
            filters = replace(filters, start=start, end=end)
        page_size = min(page_size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        repo = await _repository()
        return await repo.list_transactions(user_id, filters, page=page, page_size=page_size)

    @staticmethod
    async def search(
        user_id: str,
        term: str,
        fields: Sequence[str] = ("description",),
        limit: Optional[int] = None
    ) -> List[Transaction]:
        if not term or not term.strip():
            raise ValidationError("Search term required", {"q": "Search term required"})
        repo = await _repository()
        return await repo.search(user_id, term.strip(), fields, limit or settings.SEARCH_LIMIT)

    @staticmethod
    async def import_rows(user_id: str, rows: Sequence[Dict[str, Any]]) -> ImportResult:
        """
        Create one transaction per row.

        A bad row is logged and counted; it never aborts the batch. Store
        outages do abort it.
        """
        result = ImportResult()
        for index, row in enumerate(rows, start=1):
            fields = {key: value for key, value in row.items() if value is not None}
            fields["created_by"] = "import"
            try:
                transaction = await LedgerService.create(user_id, fields)
            except ValidationError as exc:
                result.errors += 1
                logger.warning("Import row %d rejected: %s %s", index, exc.message, exc.errors)
                continue
            result.imported += 1
            result.transactions.append(transaction)
        return result
