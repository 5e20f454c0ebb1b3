from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from findriver.core.auth import CurrentUser, get_current_user
from findriver.models.transaction import TransactionKind
from findriver.repositories.transaction_repo import TransactionFilters
from findriver.schemas.pagination import PageResponse
from findriver.schemas.stats import CategoryStat, PeriodStat, TransactionStatsResponse
from findriver.schemas.transaction import (
    ImportRequest,
    ImportResponse,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
)
from findriver.services.ledger_service import LedgerService
from findriver.services.stats_service import StatsService
from findriver.utils.date_buckets import Period

router = APIRouter()


def _to_response(transaction) -> TransactionResponse:
    return TransactionResponse.model_validate(transaction, from_attributes=True)


@router.get("/", response_model=PageResponse[TransactionResponse])
async def list_transactions(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    kind: Optional[TransactionKind] = None,
    category: Optional[str] = None,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    search: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user)
):
    """List transactions, newest first"""
    filters = TransactionFilters(
        kind=kind.value if kind else None,
        category=category,
        search=search
    )
    result = await LedgerService.list(
        current_user.id,
        filters,
        page=page,
        page_size=page_size,
        start_date=start_date,
        end_date=end_date
    )
    return PageResponse[TransactionResponse](
        items=[_to_response(tx) for tx in result.items],
        total=result.total,
        page=result.page,
        page_count=result.page_count,
        page_size=result.page_size,
        truncated=result.truncated
    )


@router.post("/", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    transaction_in: TransactionCreate,
    current_user: CurrentUser = Depends(get_current_user)
):
    """Create a transaction"""
    transaction = await LedgerService.create(
        current_user.id,
        transaction_in.model_dump(exclude_none=True)
    )
    return _to_response(transaction)


@router.get("/search", response_model=List[TransactionResponse])
async def search_transactions(
    q: str = Query(..., min_length=1),
    fields: str = Query("description"),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Case-insensitive search over text fields (comma separated)"""
    field_names = [name.strip() for name in fields.split(",") if name.strip()]
    transactions = await LedgerService.search(current_user.id, q, field_names)
    return [_to_response(tx) for tx in transactions]


@router.get("/stats", response_model=TransactionStatsResponse)
async def get_transaction_stats(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Totals and per-category sums"""
    return await StatsService.transaction_stats(current_user.id, start_date, end_date)


@router.get("/by-category", response_model=List[CategoryStat])
async def get_by_category(
    kind: Optional[TransactionKind] = None,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Per-category total, count, min, max and average"""
    return await StatsService.category_breakdown(
        current_user.id,
        kind=kind.value if kind else None,
        start_date=start_date,
        end_date=end_date
    )


@router.get("/by-period", response_model=List[PeriodStat])
async def get_by_period(
    period: Period = Period.DAILY,
    limit: int = Query(30, ge=1),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Income and expense per day, week, month or year"""
    return await StatsService.period_history(current_user.id, period=period, limit=limit)


@router.post("/import", response_model=ImportResponse)
async def import_transactions(
    request: ImportRequest,
    current_user: CurrentUser = Depends(get_current_user)
):
    """Create transactions from parsed rows; bad rows are counted, not fatal"""
    result = await LedgerService.import_rows(
        current_user.id,
        [row.model_dump() for row in request.rows]
    )
    return ImportResponse(
        imported=result.imported,
        errors=result.errors,
        transactions=[_to_response(tx) for tx in result.transactions[:10]]
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str,
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get a transaction by ID"""
    return _to_response(await LedgerService.get(transaction_id, current_user.id))


@router.patch("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: str,
    transaction_in: TransactionUpdate,
    current_user: CurrentUser = Depends(get_current_user)
):
    """Update the editable fields of a transaction"""
    transaction = await LedgerService.update(
        transaction_id,
        current_user.id,
        transaction_in.model_dump(exclude_unset=True)
    )
    return _to_response(transaction)


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    current_user: CurrentUser = Depends(get_current_user)
):
    """Delete a transaction"""
    await LedgerService.delete(transaction_id, current_user.id)
    return {"message": "Transaction deleted successfully"}
