from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from findriver.core.auth import CurrentUser, get_current_user
from findriver.schemas.pagination import PageResponse
from findriver.schemas.shift import ShiftEndRequest, ShiftResponse, ShiftStartRequest
from findriver.services.shift_service import ShiftService

router = APIRouter()


def _to_response(shift) -> ShiftResponse:
    return ShiftResponse.model_validate(shift, from_attributes=True)


@router.post("/start", response_model=ShiftResponse, status_code=status.HTTP_201_CREATED)
async def start_shift(
    request: ShiftStartRequest,
    current_user: CurrentUser = Depends(get_current_user)
):
    """Open a shift at the given odometer reading"""
    shift = await ShiftService.start(current_user.id, request.odometer)
    return _to_response(shift)


@router.post("/end", response_model=ShiftResponse)
async def end_shift(
    request: ShiftEndRequest,
    current_user: CurrentUser = Depends(get_current_user)
):
    """Close the open shift and compute total and dead km"""
    shift = await ShiftService.close(current_user.id, request.odometer)
    return _to_response(shift)


@router.get("/current", response_model=Optional[ShiftResponse])
async def get_current_shift(current_user: CurrentUser = Depends(get_current_user)):
    """Get the open shift, or null"""
    shift = await ShiftService.current(current_user.id)
    return _to_response(shift) if shift else None


@router.get("/", response_model=PageResponse[ShiftResponse])
async def list_shifts(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    current_user: CurrentUser = Depends(get_current_user)
):
    """List shifts, newest first"""
    result = await ShiftService.list(current_user.id, page=page, page_size=page_size)
    return PageResponse[ShiftResponse](
        items=[_to_response(shift) for shift in result.items],
        total=result.total,
        page=result.page,
        page_count=result.page_count,
        page_size=result.page_size,
        truncated=result.truncated
    )
