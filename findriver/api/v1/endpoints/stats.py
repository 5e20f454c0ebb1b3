from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from findriver.core.auth import CurrentUser, get_current_user
from findriver.schemas.stats import CpkStatsResponse
from findriver.services.stats_service import StatsService

router = APIRouter()


@router.get("/cpk", response_model=CpkStatsResponse)
async def get_cpk_stats(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    estimate_km: bool = False,
    current_user: CurrentUser = Depends(get_current_user)
):
    """Cost per km, fuel breakdown and daily history (default: last 30 days)"""
    return await StatsService.cpk_stats(
        current_user.id,
        start_date=start_date,
        end_date=end_date,
        estimate_km=estimate_km
    )
