"""Holiday router — list for everyone, write operations for hr."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, require_role
from leavedesk.common.constants import UserRole
from leavedesk.database import get_db
from leavedesk.holidays.schemas import (
    HolidayCreate,
    HolidayMutationResult,
    HolidayOut,
    HolidayUpdate,
)
from leavedesk.holidays.service import HolidayService
from leavedesk.users.models import User

router = APIRouter(prefix="", tags=["holidays"])


@router.get("", response_model=list[HolidayOut])
async def list_holidays(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await HolidayService.list_holidays(db, year=year)


@router.post("", response_model=HolidayMutationResult, status_code=201)
async def add_holiday(
    body: HolidayCreate,
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Declare a holiday. Approved leave spanning it is rejected and refunded."""
    return await HolidayService.add_holiday(db, user, body)


@router.put("/{holiday_id}", response_model=HolidayMutationResult)
async def update_holiday(
    holiday_id: uuid.UUID,
    body: HolidayUpdate,
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Rename or move a holiday. Moving it re-runs the leave cascade."""
    return await HolidayService.update_holiday(db, holiday_id, user, body)


@router.delete("/{holiday_id}")
async def delete_holiday(
    holiday_id: uuid.UUID,
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    await HolidayService.delete_holiday(db, holiday_id)
    return {"message": "Holiday deleted"}
