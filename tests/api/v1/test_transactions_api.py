"""
Test the /transactions endpoints
"""
import pytest
from httpx import AsyncClient, ASGITransport
from unittest.mock import AsyncMock, patch

from findriver.core.config import settings
from findriver.core.exceptions import StoreUnavailable
from findriver.main import app
from motor_fakes import OTHER_USER_ID, USER_ID, transaction_doc, utc

LEDGER_DB = "findriver.services.ledger_service.get_database"
STATS_DB = "findriver.services.stats_service.get_database"


def api_client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_create_transaction(mock_db, authenticated):
    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.post("/api/v1/transactions/", json={
                "kind": "income",
                "amount": 250.5,
                "category": "viaje",
                "description": "Aeropuerto",
                "date": "2024-01-05T10:00:00Z",
                "platform": "uber"
            })

    assert response.status_code == 201
    data = response.json()
    assert data["id"] == str(mock_db.transactions.docs[0]["_id"])
    assert data["user_id"] == USER_ID
    assert data["amount"] == 250.5
    assert data["platform"] == "uber"


@pytest.mark.asyncio
async def test_create_transaction_rejects_negative_amount(mock_db, authenticated):
    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.post("/api/v1/transactions/", json={
                "kind": "expense", "amount": -5, "category": "fuel"
            })

    assert response.status_code == 422
    assert mock_db.transactions.docs == []


@pytest.mark.asyncio
async def test_create_transaction_in_future_is_400(mock_db, authenticated):
    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.post("/api/v1/transactions/", json={
                "kind": "expense", "amount": 5, "category": "fuel", "date": "2999-01-01T00:00:00Z"
            })

    assert response.status_code == 400
    assert "date" in response.json()["errors"]


@pytest.mark.asyncio
async def test_list_transactions_page_envelope(mock_db, authenticated):
    mock_db.transactions.seed(*[
        transaction_doc("expense", i, utc(2024, 1, 1 + i)) for i in range(25)
    ])

    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.get("/api/v1/transactions/", params={"page": 2, "pageSize": 10})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 25
    assert data["page"] == 2
    assert data["pageCount"] == 3
    assert data["pageSize"] == 10
    assert data["truncated"] is False
    assert [item["amount"] for item in data["items"]] == [float(i) for i in range(14, 4, -1)]


@pytest.mark.asyncio
async def test_list_transactions_filters(mock_db, authenticated):
    mock_db.transactions.seed(
        transaction_doc("expense", 50, utc(2024, 1, 5), category="fuel"),
        transaction_doc("expense", 20, utc(2024, 2, 5), category="fuel"),
        transaction_doc("income", 300, utc(2024, 1, 5), category="viaje"),
    )

    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.get("/api/v1/transactions/", params={
                "kind": "expense", "startDate": "2024-01-01", "endDate": "2024-01-31"
            })

    assert [item["amount"] for item in response.json()["items"]] == [50]


@pytest.mark.asyncio
async def test_list_and_stats_select_the_same_window(mock_db, authenticated):
    mock_db.transactions.seed(transaction_doc("expense", 40, utc(2024, 1, 5, 3), category="fuel"))
    window = {"startDate": "2024-01-05", "endDate": "2024-01-05"}

    with patch(LEDGER_DB, return_value=mock_db), patch(STATS_DB, return_value=mock_db), \
            patch.object(settings, "WINDOW_TIMEZONE", "America/Mexico_City"):
        async with api_client() as client:
            listing = await client.get("/api/v1/transactions/", params=window)
            cpk = await client.get("/api/v1/stats/cpk", params=window)

    assert listing.json()["total"] == 0
    assert cpk.json()["summary"]["gastos"] == 0


@pytest.mark.asyncio
async def test_list_inverted_window_is_400(mock_db, authenticated):
    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.get(
                "/api/v1/transactions/", params={"startDate": "2024-02-01", "endDate": "2024-01-01"}
            )

    assert response.status_code == 400
    assert "endDate" in response.json()["errors"]


@pytest.mark.asyncio
async def test_get_other_users_transaction_is_404(mock_db, authenticated):
    [tx_id] = mock_db.transactions.seed(transaction_doc("income", 10, utc(2024, 1, 5), user_id=OTHER_USER_ID))

    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.get(f"/api/v1/transactions/{tx_id}")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_transaction(mock_db, authenticated):
    [tx_id] = mock_db.transactions.seed(transaction_doc("expense", 10, utc(2024, 1, 5), category="food"))

    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.patch(f"/api/v1/transactions/{tx_id}", json={"amount": 12, "status": "refunded"})

    assert response.status_code == 200
    assert response.json()["amount"] == 12
    assert response.json()["status"] == "refunded"


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["date", "category", "description", "status"])
async def test_update_with_null_is_400_and_keeps_record_readable(mock_db, authenticated, field):
    [tx_id] = mock_db.transactions.seed(transaction_doc("expense", 10, utc(2024, 1, 5), category="food"))

    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.patch(f"/api/v1/transactions/{tx_id}", json={field: None})
            listing = await client.get("/api/v1/transactions/")

    assert response.status_code == 400
    assert field in response.json()["errors"]
    assert mock_db.transactions.docs[0][field] is not None
    assert listing.status_code == 200
    assert listing.json()["total"] == 1


@pytest.mark.asyncio
async def test_notes_are_returned(mock_db, authenticated):
    [tx_id] = mock_db.transactions.seed(transaction_doc("expense", 10, utc(2024, 1, 5)))

    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.patch(f"/api/v1/transactions/{tx_id}", json={"notes": "cambio de aceite"})

    assert response.status_code == 200
    assert response.json()["notes"] == "cambio de aceite"


@pytest.mark.asyncio
async def test_update_transaction_kind_is_rejected(mock_db, authenticated):
    [tx_id] = mock_db.transactions.seed(transaction_doc("expense", 10, utc(2024, 1, 5)))

    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.patch(f"/api/v1/transactions/{tx_id}", json={"kind": "income"})

    assert response.status_code == 422
    assert mock_db.transactions.docs[0]["kind"] == "expense"


@pytest.mark.asyncio
async def test_delete_transaction(mock_db, authenticated):
    [tx_id] = mock_db.transactions.seed(transaction_doc("expense", 10, utc(2024, 1, 5)))

    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.delete(f"/api/v1/transactions/{tx_id}")
            again = await client.delete(f"/api/v1/transactions/{tx_id}")

    assert response.status_code == 200
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_search_transactions(mock_db, authenticated):
    mock_db.transactions.seed(
        transaction_doc("expense", 50, utc(2024, 1, 5), description="Gasolina"),
        transaction_doc("expense", 10, utc(2024, 1, 6), description="Café", notes="gasolinera"),
    )

    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            by_description = await client.get("/api/v1/transactions/search", params={"q": "gasol"})
            by_notes = await client.get(
                "/api/v1/transactions/search", params={"q": "gasol", "fields": "description,notes"}
            )

    assert [item["amount"] for item in by_description.json()] == [50]
    assert [item["amount"] for item in by_notes.json()] == [10, 50]


@pytest.mark.asyncio
async def test_import_transactions(mock_db, authenticated):
    with patch(LEDGER_DB, return_value=mock_db):
        async with api_client() as client:
            response = await client.post("/api/v1/transactions/import", json={"rows": [
                {"kind": "income", "amount": 100, "category": "viaje", "date": "2024-01-05T10:00:00Z"},
                {"kind": "bogus", "amount": 5},
            ]})

    assert response.status_code == 200
    data = response.json()
    assert data["imported"] == 1
    assert data["errors"] == 1
    assert len(data["transactions"]) == 1


@pytest.mark.asyncio
async def test_transaction_stats_endpoints(mock_db, authenticated):
    mock_db.transactions.seed(
        transaction_doc("income", 300, utc(2024, 1, 5), category="viaje"),
        transaction_doc("expense", 50, utc(2024, 1, 6), category="fuel"),
        transaction_doc("expense", 30, utc(2024, 1, 7), category="fuel"),
    )

    with patch(STATS_DB, return_value=mock_db):
        async with api_client() as client:
            stats = await client.get("/api/v1/transactions/stats")
            by_category = await client.get("/api/v1/transactions/by-category", params={"kind": "expense"})
            by_period = await client.get("/api/v1/transactions/by-period", params={"period": "mensual"})

    assert stats.json()["totales"] == {
        "totalIngresos": 300, "totalGastos": 80, "totalTransacciones": 3, "totalViajes": 1
    }
    assert stats.json()["porCategoria"][0] == {"category": "viaje", "total": 300}

    [fuel] = by_category.json()
    assert (fuel["category"], fuel["total"], fuel["count"], fuel["average"]) == ("fuel", 80, 2, 40)

    assert by_period.json() == [
        {"period": "2024-01", "ingresos": 300, "gastos": 80, "ganancias": 220, "count": 3}
    ]


@pytest.mark.asyncio
async def test_store_outage_is_503(authenticated):
    with patch(
        "findriver.services.ledger_service.LedgerService.list",
        new_callable=AsyncMock,
        side_effect=StoreUnavailable("Store unavailable during query")
    ):
        async with api_client() as client:
            response = await client.get("/api/v1/transactions/")

    assert response.status_code == 503
    assert "Store" not in response.json()["detail"]
