from fastapi import APIRouter
from findriver.api.v1.endpoints import shifts, stats, transactions

api_router = APIRouter()

api_router.include_router(stats.router, prefix="/stats", tags=["stats"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(shifts.router, prefix="/shifts", tags=["shifts"])
