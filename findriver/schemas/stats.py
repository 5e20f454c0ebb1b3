from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True
    )


class CpkSummary(CamelModel):
    ingresos: float
    gastos: float
    utilidad: float
    cpk: float
    total_km: float
    km_muertos: float
    eficiencia_km: float
    utilidad_por_km: float
    dias_trabajados: int = 0
    is_estimated_km: bool = False
    truncated: bool = False


class CpkBreakdown(CamelModel):
    combustible: float
    otros: float


class HistoryPoint(CamelModel):
    date: str
    ingresos: float
    gastos: float
    utilidad: float
    total_km: float = 0.0


class CategoryStat(CamelModel):
    category: str
    total: float
    count: int
    min: float
    max: float
    average: float


class CpkStatsResponse(CamelModel):
    start_date: datetime
    end_date: datetime
    summary: CpkSummary
    breakdown: CpkBreakdown
    history: List[HistoryPoint]
    categories: List[CategoryStat] = []


class PeriodStat(CamelModel):
    period: str
    ingresos: float
    gastos: float
    ganancias: float
    count: int


class CategoryTotal(CamelModel):
    category: str
    total: float


class TransactionTotals(CamelModel):
    total_ingresos: float
    total_gastos: float
    total_transacciones: int
    total_viajes: int


class TransactionStatsResponse(CamelModel):
    totales: TransactionTotals
    por_categoria: List[CategoryTotal]
    truncated: bool = False
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
