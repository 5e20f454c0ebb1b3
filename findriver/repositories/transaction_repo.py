from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from findriver.db.store import Eq, Predicate, Range
from findriver.models.transaction import Transaction, TransactionKind
from findriver.repositories.collection import CollectionView, FetchResult, Page, SortSpec


@dataclass
class TransactionFilters:
    kind: Optional[str] = None
    category: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    search: Optional[str] = None


class TransactionRepository(CollectionView[Transaction]):
    """Transaction database operations."""

    collection_name = "transactions"
    model = Transaction
    search_fields = ("description",)

    def predicates(self, user_id: str, filters: Optional[TransactionFilters] = None) -> List[Predicate]:
        """Equality on user/kind/category plus the single allowed range, on date."""
        filters = filters or TransactionFilters()
        predicates: List[Predicate] = [Eq("user_id", user_id)]
        if filters.kind:
            predicates.append(Eq("kind", TransactionKind(filters.kind).value))
        if filters.category:
            predicates.append(Eq("category", filters.category))
        if filters.start is not None or filters.end is not None:
            predicates.append(Range("date", gte=filters.start, lte=filters.end))
        return predicates

    async def create(self, transaction: Transaction) -> Transaction:
        doc = await self.store.insert(self.collection_name, transaction.to_document())
        return Transaction(**doc)

    async def get(self, transaction_id: str, user_id: str) -> Optional[Transaction]:
        doc = await self.store.get(self.collection_name, transaction_id, user_id=user_id)
        if doc:
            return Transaction(**doc)
        return None

    async def update(self, transaction_id: str, user_id: str, changes: Dict[str, Any]) -> Optional[Transaction]:
        doc = await self.store.update(self.collection_name, transaction_id, user_id, changes)
        if doc:
            return Transaction(**doc)
        return None

    async def delete(self, transaction_id: str, user_id: str) -> bool:
        return await self.store.delete(self.collection_name, transaction_id, user_id)

    async def list_transactions(
        self,
        user_id: str,
        filters: Optional[TransactionFilters] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        sort: Optional[SortSpec] = None
    ) -> Page[Transaction]:
        """Newest first by default."""
        filters = filters or TransactionFilters()
        return await self.list_page(
            self.predicates(user_id, filters),
            page=page,
            page_size=page_size,
            sort=sort,
            search=filters.search
        )

    async def in_window(
        self,
        user_id: str,
        start: Optional[datetime],
        end: Optional[datetime],
        kind: Optional[str] = None
    ) -> FetchResult[Transaction]:
        """Every record of the user dated inside [start, end], up to the cap."""
        filters = TransactionFilters(kind=kind, start=start, end=end)
        return await self.fetch(self.predicates(user_id, filters))

    async def income_since(self, user_id: str, since: datetime) -> FetchResult[Transaction]:
        """Income records dated at or after ``since``."""
        filters = TransactionFilters(kind=TransactionKind.INCOME.value, start=since)
        return await self.fetch(self.predicates(user_id, filters))

    async def search(
        self,
        user_id: str,
        term: str,
        fields: Sequence[str] = ("description",),
        limit: int = 50
    ) -> List[Transaction]:
        result = await self.find(
            self.predicates(user_id),
            search=term,
            search_fields=fields,
            limit=limit
        )
        return result.items
