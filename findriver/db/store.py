"""
RecordStore - typed query adapter over the document store.

The store only answers conjunctions of equality filters plus a range on a
single field, and every query is capped at ``STORE_FETCH_CAP`` documents.
Ordering, counting and paging are the caller's job (see
repositories/collection.py).

Contract:
- query() returns a Batch; ``truncated`` is True when more documents matched
  than the cap allowed, so ``len(batch)`` is a floor, not the true total
- ranges on more than one field raise UnsupportedQuery before any I/O
- transport failures surface as StoreUnavailable, never retried here
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure

from findriver.core.config import settings
from findriver.core.exceptions import StoreUnavailable, UnsupportedQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class Range:
    field: str
    gte: Any = None
    lte: Any = None


Predicate = Union[Eq, Range]


@dataclass
class Batch:
    records: List[Dict[str, Any]] = field(default_factory=list)
    truncated: bool = False

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)


def _to_store_value(value: Any) -> Any:
    # Instants are always compared in UTC
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


def _object_id(record_id: str) -> Optional[ObjectId]:
    if isinstance(record_id, ObjectId):
        return record_id
    if isinstance(record_id, str) and ObjectId.is_valid(record_id):
        return ObjectId(record_id)
    return None


def _from_store(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    doc = dict(doc)
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def build_filter(predicates: Sequence[Predicate]) -> Dict[str, Any]:
    """
    Translate predicates into a native Mongo filter.

    Raises UnsupportedQuery when more than one field carries a range, or when
    a field carries both an equality and a range.
    """
    query: Dict[str, Any] = {}
    range_field: Optional[str] = None

    for predicate in predicates:
        if isinstance(predicate, Eq):
            if predicate.field in query:
                raise UnsupportedQuery(f"Field '{predicate.field}' is constrained twice")
            query[predicate.field] = _to_store_value(predicate.value)
        elif isinstance(predicate, Range):
            if range_field is not None and range_field != predicate.field:
                raise UnsupportedQuery(
                    f"Range on '{predicate.field}' conflicts with range on '{range_field}'"
                )
            existing = query.get(predicate.field)
            if existing is not None and not isinstance(existing, dict):
                raise UnsupportedQuery(f"Field '{predicate.field}' is constrained twice")
            range_field = predicate.field
            bounds = dict(existing or {})
            if predicate.gte is not None:
                bounds["$gte"] = _to_store_value(predicate.gte)
            if predicate.lte is not None:
                bounds["$lte"] = _to_store_value(predicate.lte)
            if bounds:
                query[predicate.field] = bounds
        else:
            raise UnsupportedQuery(f"Unknown predicate: {predicate!r}")

    return query


class RecordStore:
    """Capped, typed access to the document collections."""

    def __init__(self, db: AsyncIOMotorDatabase, fetch_cap: Optional[int] = None):
        self.db = db
        self.fetch_cap = fetch_cap or settings.STORE_FETCH_CAP

    @contextmanager
    def _transport(self, operation: str, collection: str) -> Iterator[None]:
        try:
            yield
        except ConnectionFailure as exc:
            logger.error("Store %s on '%s' failed: %s", operation, collection, exc)
            raise StoreUnavailable(f"Store unavailable during {operation}") from exc

    async def query(
        self,
        collection: str,
        predicates: Sequence[Predicate],
        limit: Optional[int] = None
    ) -> Batch:
        """Fetch at most ``limit`` (default: the fetch cap) matching records, unordered."""
        cap = min(limit or self.fetch_cap, self.fetch_cap)
        query = build_filter(predicates)

        with self._transport("query", collection):
            # One extra document tells a full page apart from a truncated one
            docs = await self.db[collection].find(query).limit(cap + 1).to_list(length=cap + 1)

        truncated = len(docs) > cap
        if truncated:
            logger.debug("Query on '%s' hit the fetch cap of %d", collection, cap)
            docs = docs[:cap]
        return Batch(records=[_from_store(doc) for doc in docs], truncated=truncated)

    async def get(
        self,
        collection: str,
        record_id: str,
        user_id: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Get one record by id, scoped to its owner when ``user_id`` is given."""
        oid = _object_id(record_id)
        if oid is None:
            return None
        query: Dict[str, Any] = {"_id": oid}
        if user_id is not None:
            query["user_id"] = user_id

        with self._transport("get", collection):
            doc = await self.db[collection].find_one(query)
        return _from_store(doc)

    async def insert(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record and return it with its new id."""
        doc = {key: _to_store_value(value) for key, value in document.items()}
        doc.pop("_id", None)

        with self._transport("insert", collection):
            result = await self.db[collection].insert_one(doc)
        doc["_id"] = result.inserted_id
        return _from_store(doc)

    async def update(
        self,
        collection: str,
        record_id: str,
        user_id: str,
        changes: Dict[str, Any],
        guard: Sequence[Predicate] = ()
    ) -> Optional[Dict[str, Any]]:
        """
        Set fields on a record owned by ``user_id``.

        ``guard`` adds conditions that must still hold at write time. Returns
        None when no record matches.
        """
        oid = _object_id(record_id)
        if oid is None:
            return None
        return await self.compare_and_set(
            collection,
            [Eq("_id", oid), Eq("user_id", user_id), *guard],
            changes
        )

    async def compare_and_set(
        self,
        collection: str,
        predicates: Sequence[Predicate],
        changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Atomically update the first record matching ``predicates``.

        Returns the updated record, or None when nothing matched (the guard
        condition no longer holds).
        """
        query = build_filter(predicates)
        updates = {key: _to_store_value(value) for key, value in changes.items()}

        with self._transport("update", collection):
            doc = await self.db[collection].find_one_and_update(
                query,
                {"$set": updates},
                return_document=ReturnDocument.AFTER
            )
        return _from_store(doc)

    async def delete(self, collection: str, record_id: str, user_id: str) -> bool:
        """Hard delete a record owned by ``user_id``."""
        oid = _object_id(record_id)
        if oid is None:
            return False

        with self._transport("delete", collection):
            result = await self.db[collection].delete_one({"_id": oid, "user_id": user_id})
        return result.deleted_count > 0
