"""Leave router — request, list, approve / reject, monthly accrual.

All endpoints require authentication. Who may approve or reject a given
request is decided by the approval workflow from the applicant's role.
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, require_role
from leavedesk.common.constants import LeaveStatus, UserRole
from leavedesk.common.pagination import PaginatedResponse, PaginationParams
from leavedesk.config import settings
from leavedesk.database import get_db
from leavedesk.leave.schemas import (
    LeaveDecisionOut,
    LeaveDecisionRequest,
    LeaveRequestCreate,
    LeaveRequestOut,
)
from leavedesk.leave.service import LeaveService
from leavedesk.leave.workflow import ApprovalService
from leavedesk.users.models import User
from leavedesk.users.schemas import AccrualResult
from leavedesk.users.service import UserService

router = APIRouter(prefix="", tags=["leave"])

_reviewer = require_role(UserRole.hr, UserRole.management)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=LeaveRequestOut, status_code=201)
async def request_leave(
    body: LeaveRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Request leave. Validates dates, overlap, holidays and balance."""
    return await LeaveService.request_leave(db, user.id, body)


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=PaginatedResponse[LeaveRequestOut])
async def list_leaves(
    status: Optional[LeaveStatus] = Query(None),
    params: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Requests visible to the caller's role (own plus the tier they review)."""
    return await LeaveService.list_for_role(db, user, status, params)


# ── GET /mine ───────────────────────────────────────────────────────

@router.get("/mine", response_model=PaginatedResponse[LeaveRequestOut])
async def my_leaves(
    status: Optional[LeaveStatus] = Query(None),
    params: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_mine(db, user, status, params)


# ── GET /pending | /approved | /rejected | /cancelled ───────────────

@router.get("/pending", response_model=PaginatedResponse[LeaveRequestOut])
async def pending_leaves(
    params: PaginationParams = Depends(),
    user: User = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_for_role(db, user, LeaveStatus.pending, params)


@router.get("/approved", response_model=PaginatedResponse[LeaveRequestOut])
async def approved_leaves(
    params: PaginationParams = Depends(),
    user: User = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_for_role(db, user, LeaveStatus.approved, params)


@router.get("/rejected", response_model=PaginatedResponse[LeaveRequestOut])
async def rejected_leaves(
    params: PaginationParams = Depends(),
    user: User = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_for_role(db, user, LeaveStatus.rejected, params)


@router.get("/cancelled", response_model=PaginatedResponse[LeaveRequestOut])
async def cancelled_leaves(
    params: PaginationParams = Depends(),
    user: User = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_for_role(db, user, LeaveStatus.cancelled, params)


# ── POST /accrue/monthly ────────────────────────────────────────────

@router.post("/accrue/monthly", response_model=AccrualResult)
async def accrue_monthly(
    user: User = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Add the monthly accrual to every employee and hr balance."""
    updated = await UserService.accrue_monthly(db, settings.MONTHLY_ACCRUAL_DAYS)
    return AccrualResult(days_added=settings.MONTHLY_ACCRUAL_DAYS, users_updated=updated)


# ── POST /{id}/approve ──────────────────────────────────────────────

@router.post("/{leave_id}/approve", response_model=LeaveDecisionOut)
async def approve_leave(
    leave_id: uuid.UUID,
    body: Optional[LeaveDecisionRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending request. Debits the applicant's balance."""
    return await ApprovalService.approve(
        db, leave_id, user, remarks=body.remarks if body else None,
    )


# ── POST /{id}/reject ───────────────────────────────────────────────

@router.post("/{leave_id}/reject", response_model=LeaveDecisionOut)
async def reject_leave(
    leave_id: uuid.UUID,
    body: Optional[LeaveDecisionRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending request, or cancel an approved one and refund it."""
    return await ApprovalService.reject_or_cancel(
        db, leave_id, user, remarks=body.remarks if body else None,
    )
