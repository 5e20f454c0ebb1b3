"""Tests for in-memory ordering, search and paging over capped batches."""
from datetime import timedelta

import pytest

from findriver.core.exceptions import ValidationError
from findriver.db.store import Eq, RecordStore
from findriver.models.transaction import Transaction
from findriver.repositories.collection import SortSpec, matches_search, paginate, sort_records
from findriver.repositories.transaction_repo import TransactionFilters, TransactionRepository
from motor_fakes import USER_ID, transaction_doc, utc


def make_tx(amount, date, description=""):
    return Transaction(
        user_id=USER_ID, kind="expense", amount=amount, date=date, description=description
    )


class TestSortRecords:
    def test_descending_by_date(self):
        records = [make_tx(1, utc(2024, 1, 1)), make_tx(2, utc(2024, 1, 3)), make_tx(3, utc(2024, 1, 2))]

        ordered = sort_records(records, SortSpec(field="date", descending=True))

        assert [r.amount for r in ordered] == [2, 3, 1]

    def test_ties_keep_fetch_order_in_both_directions(self):
        same_day = utc(2024, 1, 1)
        records = [make_tx(1, same_day), make_tx(2, same_day), make_tx(3, same_day)]

        assert [r.amount for r in sort_records(records, SortSpec("date", True))] == [1, 2, 3]
        assert [r.amount for r in sort_records(records, SortSpec("date", False))] == [1, 2, 3]

    def test_missing_values_sort_last(self):
        records = [
            Transaction(user_id=USER_ID, kind="income", amount=1, date=utc(2024, 1, 1)),
            Transaction(user_id=USER_ID, kind="income", amount=2, date=utc(2024, 1, 1), distance_km=5),
        ]

        ordered = sort_records(records, SortSpec(field="distance_km", descending=False))

        assert [r.amount for r in ordered] == [2, 1]


def test_matches_search_is_case_insensitive():
    tx = make_tx(10, utc(2024, 1, 1), description="Carga de GASOLINA")

    assert matches_search(tx, "gasolina", ["description"])
    assert not matches_search(tx, "peaje", ["description"])
    assert not matches_search(tx, "gasolina", ["category"])


class TestPaginate:
    def test_page_count_has_floor_of_one(self):
        page = paginate([], page=1, page_size=20)

        assert page.items == []
        assert page.total == 0
        assert page.page_count == 1

    def test_last_partial_page(self):
        page = paginate(list(range(45)), page=3, page_size=20)

        assert page.items == list(range(40, 45))
        assert page.page_count == 3

    def test_page_past_the_end_is_empty(self):
        page = paginate(list(range(5)), page=4, page_size=20)
        assert page.items == []
        assert page.total == 5

    @pytest.mark.parametrize("page,page_size", [(0, 20), (1, 0)])
    def test_invalid_arguments(self, page, page_size):
        with pytest.raises(ValidationError):
            paginate(list(range(5)), page=page, page_size=page_size)


@pytest.mark.asyncio
class TestCollectionView:
    async def test_list_over_cap_reports_capped_total(self, mock_db):
        start = utc(2024, 1, 1)
        mock_db.transactions.seed(*[
            transaction_doc("expense", i, start + timedelta(minutes=i)) for i in range(600)
        ])
        repo = TransactionRepository(RecordStore(mock_db))

        page = await repo.list_transactions(USER_ID, page=1, page_size=20)

        assert len(page.items) == 20
        assert page.total == 500
        assert page.page_count == 25
        assert page.truncated is True

    async def test_list_is_idempotent(self, mock_db):
        mock_db.transactions.seed(*[
            transaction_doc("expense", i, utc(2024, 1, 1 + i % 5)) for i in range(30)
        ])
        repo = TransactionRepository(RecordStore(mock_db))

        first = await repo.list_transactions(USER_ID, page=2, page_size=7)
        second = await repo.list_transactions(USER_ID, page=2, page_size=7)

        assert [tx.id for tx in first.items] == [tx.id for tx in second.items]

    async def test_list_filters_by_kind_and_search(self, mock_db):
        mock_db.transactions.seed(
            transaction_doc("expense", 50, utc(2024, 1, 2), category="fuel", description="Gasolina Pemex"),
            transaction_doc("expense", 20, utc(2024, 1, 3), category="food", description="Comida"),
            transaction_doc("income", 300, utc(2024, 1, 4), description="Viaje gasolinera"),
        )
        repo = TransactionRepository(RecordStore(mock_db))

        page = await repo.list_transactions(
            USER_ID, TransactionFilters(kind="expense", search="gasolina")
        )

        assert [tx.amount for tx in page.items] == [50]
        assert page.total == 1

    async def test_date_range_is_inclusive(self, mock_db):
        mock_db.transactions.seed(
            transaction_doc("income", 1, utc(2024, 1, 1)),
            transaction_doc("income", 2, utc(2024, 1, 31, 23, 59, 59)),
            transaction_doc("income", 3, utc(2024, 2, 1)),
        )
        repo = TransactionRepository(RecordStore(mock_db))

        result = await repo.in_window(USER_ID, utc(2024, 1, 1), utc(2024, 1, 31, 23, 59, 59, 999000))

        assert sorted(tx.amount for tx in result.items) == [1, 2]

    async def test_count_is_capped(self, mock_db):
        mock_db.transactions.seed(*[transaction_doc("income", 1, utc(2024, 1, 1)) for _ in range(8)])
        repo = TransactionRepository(RecordStore(mock_db, fetch_cap=5))

        count = await repo.count([Eq("user_id", USER_ID)])

        assert count.total == 5
        assert count.truncated is True
