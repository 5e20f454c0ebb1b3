"""
StatsService - cost-per-km and history aggregates computed in memory.

The store has no grouped sums, so every figure here is a reduction over one
capped batch of transactions and one capped batch of closed shifts:

1. Normalize the date window (InvalidWindow before any fetch)
2. Fetch transactions dated in the window
3. Fetch closed shifts that started in the window
4. One pass over transactions: totals, fuel split, categories, daily buckets
5. Merge shift km into the daily buckets, sum km and dead km
6. Derive CPK with a 1 km floor on the denominator

Both the /stats/cpk endpoint and scripts/diagnose_cpk.py call cpk_stats(), so
the arithmetic lives in one place. Any store failure aborts the whole call.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from findriver.core.config import settings
from findriver.db.session import get_database
from findriver.db.store import RecordStore
from findriver.models.shift import Shift
from findriver.models.transaction import Transaction, TransactionKind
from findriver.models.user import UserConfig
from findriver.repositories.shift_repo import ShiftRepository
from findriver.repositories.transaction_repo import TransactionRepository
from findriver.repositories.user_repo import UserRepository
from findriver.schemas.stats import (
    CategoryStat,
    CategoryTotal,
    CpkBreakdown,
    CpkStatsResponse,
    CpkSummary,
    HistoryPoint,
    PeriodStat,
    TransactionStatsResponse,
    TransactionTotals,
)
from findriver.utils.date_buckets import (
    Period,
    bucket_key,
    normalize_window,
    optional_window,
    resolve_timezone,
)

logger = logging.getLogger(__name__)


# ===== REDUCERS =====

@dataclass
class Totals:
    income: float = 0.0
    expense: float = 0.0
    fuel: float = 0.0
    count: int = 0
    trips: int = 0

    @property
    def other_expense(self) -> float:
        return self.expense - self.fuel

    @property
    def profit(self) -> float:
        return self.income - self.expense


@dataclass
class CategoryBucket:
    category: str
    total: float = 0.0
    count: int = 0
    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def average(self) -> float:
        return self.total / self.count if self.count else 0.0

    def add(self, amount: float) -> None:
        self.total += amount
        self.count += 1
        self.min = amount if self.min is None else min(self.min, amount)
        self.max = amount if self.max is None else max(self.max, amount)


@dataclass
class HistoryBucket:
    key: str
    income: float = 0.0
    expense: float = 0.0
    count: int = 0
    total_km: float = 0.0

    @property
    def profit(self) -> float:
        return self.income - self.expense


@dataclass
class ShiftTotals:
    total_km: float = 0.0
    dead_km: float = 0.0
    shift_count: int = 0


@dataclass
class CpkFigures:
    cpk: float
    total_km: float
    denominator_km: float
    profit: float
    profit_per_km: float
    km_efficiency: float
    is_estimated_km: bool = False


@dataclass
class Snapshot:
    """Everything derived from one in-memory batch of transactions."""
    totals: Totals = field(default_factory=Totals)
    categories: Dict[str, CategoryBucket] = field(default_factory=dict)
    buckets: Dict[str, HistoryBucket] = field(default_factory=dict)


def is_fuel(transaction: Transaction, fuel_categories: Iterable[str]) -> bool:
    labels = {label.casefold() for label in fuel_categories}
    return (
        transaction.kind == TransactionKind.EXPENSE
        and (transaction.category or "").casefold() in labels
    )


def reduce_transactions(
    transactions: Iterable[Transaction],
    period: Period = Period.DAILY,
    tz: tzinfo = timezone.utc,
    fuel_categories: Optional[Sequence[str]] = None
) -> Snapshot:
    """Totals, category buckets and period buckets in a single pass."""
    fuel_categories = fuel_categories if fuel_categories is not None else settings.FUEL_CATEGORIES
    snapshot = Snapshot()
    totals = snapshot.totals

    for tx in transactions:
        amount = tx.amount or 0.0
        totals.count += 1

        key = bucket_key(tx.date, period, tz)
        bucket = snapshot.buckets.get(key)
        if bucket is None:
            bucket = snapshot.buckets[key] = HistoryBucket(key=key)
        bucket.count += 1

        if tx.kind == TransactionKind.INCOME:
            totals.income += amount
            totals.trips += 1
            bucket.income += amount
        else:
            totals.expense += amount
            bucket.expense += amount
            if is_fuel(tx, fuel_categories):
                totals.fuel += amount

        category = (tx.category or "").strip().casefold()
        if category:
            group = snapshot.categories.get(category)
            if group is None:
                group = snapshot.categories[category] = CategoryBucket(category=category)
            group.add(amount)

    return snapshot


def reduce_shifts(
    shifts: Iterable[Shift],
    buckets: Optional[Dict[str, HistoryBucket]] = None,
    tz: tzinfo = timezone.utc
) -> ShiftTotals:
    """
    Sum km over closed shifts. When ``buckets`` is given, each shift's km is
    also added to the daily bucket of its start date (created if missing).
    """
    totals = ShiftTotals()
    for shift in shifts:
        total_km = shift.total_km or 0.0
        totals.total_km += total_km
        totals.dead_km += shift.dead_km or 0.0
        totals.shift_count += 1

        if buckets is not None:
            key = bucket_key(shift.started_at, Period.DAILY, tz)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = buckets[key] = HistoryBucket(key=key)
            bucket.total_km += total_km
    return totals


def sorted_categories(categories: Dict[str, CategoryBucket]) -> List[CategoryBucket]:
    return sorted(categories.values(), key=lambda bucket: bucket.total, reverse=True)


def recent_buckets(buckets: Dict[str, HistoryBucket], limit: Optional[int] = None) -> List[HistoryBucket]:
    """The ``limit`` latest keys, returned oldest first."""
    keys = sorted(buckets, reverse=True)
    if limit is not None:
        keys = keys[:limit]
    return [buckets[key] for key in sorted(keys)]


def fuel_implied_km(fuel_spend: float, config: UserConfig) -> float:
    """Distance implied by fuel spend: litres bought times km per litre."""
    fuel_price = config.fuel_price or settings.DEFAULT_FUEL_PRICE
    fuel_efficiency = config.fuel_efficiency or settings.DEFAULT_FUEL_EFFICIENCY
    return fuel_spend / fuel_price * fuel_efficiency


def compute_cpk(
    totals: Totals,
    shift_totals: ShiftTotals,
    config: Optional[UserConfig] = None,
    estimate: bool = False
) -> CpkFigures:
    """
    CPK = expense / km, with km floored to 1 so an empty window divides by 1.

    With ``estimate`` on, a recorded distance below MIN_RECORDED_KM is replaced
    by the fuel-implied distance when that is larger.
    """
    total_km = shift_totals.total_km
    is_estimated = False

    if estimate and total_km < settings.MIN_RECORDED_KM and totals.fuel > 0:
        estimated = fuel_implied_km(totals.fuel, config or UserConfig())
        if estimated > total_km:
            total_km = estimated
            is_estimated = True

    denominator = total_km if total_km > 0 else 1
    profit = totals.income - totals.expense

    if shift_totals.total_km > 0:
        efficiency = (shift_totals.total_km - shift_totals.dead_km) / shift_totals.total_km * 100
    else:
        efficiency = 0.0

    return CpkFigures(
        cpk=round(totals.expense / denominator, 2),
        total_km=total_km,
        denominator_km=denominator,
        profit=profit,
        profit_per_km=profit / denominator,
        km_efficiency=efficiency,
        is_estimated_km=is_estimated
    )


def _category_stats(categories: Dict[str, CategoryBucket]) -> List[CategoryStat]:
    return [
        CategoryStat(
            category=bucket.category,
            total=bucket.total,
            count=bucket.count,
            min=bucket.min or 0.0,
            max=bucket.max or 0.0,
            average=bucket.average
        )
        for bucket in sorted_categories(categories)
    ]


def _optional_window(
    start_date: Optional[date],
    end_date: Optional[date],
    today: Optional[date] = None
) -> Tuple[Optional[datetime], Optional[datetime]]:
    return optional_window(
        start_date,
        end_date,
        tz_name=settings.WINDOW_TIMEZONE,
        default_days=settings.DEFAULT_WINDOW_DAYS,
        today=today
    )


# ===== SERVICE =====

class StatsService:
    @staticmethod
    async def cpk_stats(
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        estimate_km: bool = False,
        today: Optional[date] = None,
        bucket_tz: Optional[str] = None
    ) -> CpkStatsResponse:
        """
        CPK summary, fuel/other breakdown, category stats and daily history for
        the window (default: trailing DEFAULT_WINDOW_DAYS days).
        """
        start, end = normalize_window(
            start_date,
            end_date,
            tz_name=settings.WINDOW_TIMEZONE,
            default_days=settings.DEFAULT_WINDOW_DAYS,
            today=today
        )
        tz = resolve_timezone(bucket_tz or settings.BUCKET_TIMEZONE)

        db = await get_database()
        store = RecordStore(db)

        transactions = await TransactionRepository(store).in_window(user_id, start, end)
        shifts = await ShiftRepository(store).closed_in_window(user_id, start, end)

        config = None
        if estimate_km:
            config = await UserRepository(store).get_config(user_id)

        snapshot = reduce_transactions(transactions.items, Period.DAILY, tz)
        shift_totals = reduce_shifts(shifts.items, snapshot.buckets, tz)
        figures = compute_cpk(snapshot.totals, shift_totals, config, estimate=estimate_km)
        truncated = transactions.truncated or shifts.truncated
        if truncated:
            logger.warning("CPK stats for user %s computed from a truncated batch", user_id)

        totals = snapshot.totals
        summary = CpkSummary(
            ingresos=totals.income,
            gastos=totals.expense,
            utilidad=figures.profit,
            cpk=figures.cpk,
            total_km=round(figures.total_km, 1),
            km_muertos=round(shift_totals.dead_km, 1),
            eficiencia_km=figures.km_efficiency,
            utilidad_por_km=figures.profit_per_km,
            dias_trabajados=shift_totals.shift_count,
            is_estimated_km=figures.is_estimated_km,
            truncated=truncated
        )
        history = [
            HistoryPoint(
                date=bucket.key,
                ingresos=bucket.income,
                gastos=bucket.expense,
                utilidad=bucket.profit,
                total_km=round(bucket.total_km, 1)
            )
            for bucket in recent_buckets(snapshot.buckets)
        ]

        return CpkStatsResponse(
            start_date=start,
            end_date=end,
            summary=summary,
            breakdown=CpkBreakdown(combustible=totals.fuel, otros=totals.other_expense),
            history=history,
            categories=_category_stats(snapshot.categories)
        )

    @staticmethod
    async def period_history(
        user_id: str,
        period: Period = Period.DAILY,
        limit: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None
    ) -> List[PeriodStat]:
        """Income/expense per period bucket, latest ``limit`` buckets, oldest first."""
        start, end = _optional_window(start_date, end_date, today)
        tz = resolve_timezone(settings.BUCKET_TIMEZONE)

        db = await get_database()
        transactions = await TransactionRepository(RecordStore(db)).in_window(user_id, start, end)

        snapshot = reduce_transactions(transactions.items, Period(period), tz)
        return [
            PeriodStat(
                period=bucket.key,
                ingresos=bucket.income,
                gastos=bucket.expense,
                ganancias=bucket.profit,
                count=bucket.count
            )
            for bucket in recent_buckets(snapshot.buckets, limit or settings.HISTORY_LIMIT)
        ]

    @staticmethod
    async def category_breakdown(
        user_id: str,
        kind: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None
    ) -> List[CategoryStat]:
        """Per-category total, count, min, max and average, largest total first."""
        start, end = _optional_window(start_date, end_date, today)

        db = await get_database()
        transactions = await TransactionRepository(RecordStore(db)).in_window(user_id, start, end, kind=kind)

        snapshot = reduce_transactions(transactions.items)
        return _category_stats(snapshot.categories)

    @staticmethod
    async def transaction_stats(
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None
    ) -> TransactionStatsResponse:
        start, end = _optional_window(start_date, end_date, today)

        db = await get_database()
        transactions = await TransactionRepository(RecordStore(db)).in_window(user_id, start, end)

        snapshot = reduce_transactions(transactions.items)
        totals = snapshot.totals
        return TransactionStatsResponse(
            totales=TransactionTotals(
                total_ingresos=totals.income,
                total_gastos=totals.expense,
                total_transacciones=totals.count,
                total_viajes=totals.trips
            ),
            por_categoria=[
                CategoryTotal(category=bucket.category, total=bucket.total)
                for bucket in sorted_categories(snapshot.categories)
            ],
            truncated=transactions.truncated,
            start_date=start,
            end_date=end
        )
