"""
CollectionView - list/find/count semantics the document store cannot express.

Core algorithm:
1. Fetch one capped batch through RecordStore (unordered)
2. Apply in-memory filters (free-text search)
3. Stable-sort the whole batch by the requested field
4. Slice the requested page

``total`` is the size of the capped batch, not the true number of matches.
``truncated`` tells the two apart.
"""

import math
from dataclasses import dataclass, field
from typing import Generic, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel

from findriver.core.config import settings
from findriver.core.exceptions import ValidationError
from findriver.db.store import Predicate, RecordStore

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class SortSpec:
    field: str = "date"
    descending: bool = True


@dataclass
class FetchResult(Generic[ModelT]):
    items: List[ModelT] = field(default_factory=list)
    truncated: bool = False


@dataclass(frozen=True)
class Count:
    total: int
    truncated: bool = False


@dataclass
class Page(Generic[ModelT]):
    items: List[ModelT]
    total: int
    page: int
    page_count: int
    page_size: int
    truncated: bool = False


def sort_records(records: Sequence[ModelT], sort: SortSpec) -> List[ModelT]:
    """
    Stable sort on one field; equal keys keep fetch order in both directions.
    Records missing the field go last.
    """
    present = [r for r in records if getattr(r, sort.field, None) is not None]
    missing = [r for r in records if getattr(r, sort.field, None) is None]
    ordered = sorted(present, key=lambda r: getattr(r, sort.field), reverse=sort.descending)
    return ordered + missing


def matches_search(record: BaseModel, term: str, fields: Sequence[str]) -> bool:
    """Case-insensitive substring match on any of the text fields."""
    needle = term.casefold()
    for name in fields:
        value = getattr(record, name, None)
        if isinstance(value, str) and needle in value.casefold():
            return True
    return False


def check_page_args(page: int, page_size: int) -> None:
    errors = {}
    if page < 1:
        errors["page"] = "Must be >= 1"
    if page_size < 1:
        errors["pageSize"] = "Must be >= 1"
    if errors:
        raise ValidationError("Invalid pagination", errors)


def paginate(items: Sequence[ModelT], page: int, page_size: int, truncated: bool = False) -> Page[ModelT]:
    check_page_args(page, page_size)
    total = len(items)
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        total=total,
        page=page,
        page_count=max(1, math.ceil(total / page_size)),
        page_size=page_size,
        truncated=truncated
    )


class CollectionView(Generic[ModelT]):
    """Base repository: typed, capped reads with in-memory ordering and paging."""

    collection_name: str = ""
    model: Type[ModelT]
    search_fields: Sequence[str] = ("description",)

    def __init__(self, store: RecordStore):
        self.store = store

    def _to_model(self, doc: dict) -> ModelT:
        return self.model(**doc)

    async def fetch(self, predicates: Sequence[Predicate], limit: Optional[int] = None) -> FetchResult[ModelT]:
        """One capped, unordered batch as models."""
        batch = await self.store.query(self.collection_name, predicates, limit=limit)
        return FetchResult(
            items=[self._to_model(doc) for doc in batch.records],
            truncated=batch.truncated
        )

    async def find(
        self,
        predicates: Sequence[Predicate],
        sort: Optional[SortSpec] = None,
        search: Optional[str] = None,
        search_fields: Optional[Sequence[str]] = None,
        limit: Optional[int] = None
    ) -> FetchResult[ModelT]:
        """Fetch, filter by search term, then order the whole batch."""
        result = await self.fetch(predicates)
        items = result.items
        if search:
            fields = search_fields or self.search_fields
            items = [item for item in items if matches_search(item, search, fields)]
        items = sort_records(items, sort or SortSpec())
        if limit is not None:
            items = items[:limit]
        return FetchResult(items=items, truncated=result.truncated)

    async def count(self, predicates: Sequence[Predicate]) -> Count:
        """Capped count of matching records."""
        batch = await self.store.query(self.collection_name, predicates)
        return Count(total=len(batch), truncated=batch.truncated)

    async def list_page(
        self,
        predicates: Sequence[Predicate],
        page: int = 1,
        page_size: Optional[int] = None,
        sort: Optional[SortSpec] = None,
        search: Optional[str] = None
    ) -> Page[ModelT]:
        page_size = page_size or settings.DEFAULT_PAGE_SIZE
        check_page_args(page, page_size)
        result = await self.find(predicates, sort=sort, search=search)
        return paginate(result.items, page, page_size, truncated=result.truncated)
