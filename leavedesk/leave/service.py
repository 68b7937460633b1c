"""Leave service layer — eligibility checks, leave requests, listings.

Business logic:
  - Strict UTC calendar-day parsing of the requested range
  - Self-overlap guard for employee and hr applicants
  - Holiday collision and working-day (weekend + holiday exclusion) counting
  - Balance sufficiency check; the balance itself moves only on approval
  - Role-scoped listings with pagination
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leavedesk.common.calendar import (
    InvalidDateError,
    count_working_days,
    normalize_to_utc_day,
    utc_today,
)
from leavedesk.common.constants import (
    LEAVE_VIEWABLE_APPLICANT_ROLES,
    ErrorCode,
    LeaveStatus,
    UserRole,
)
from leavedesk.common.exceptions import BusinessRuleException, NotFoundException
from leavedesk.common.pagination import PaginatedResponse, PaginationParams, paginate
from leavedesk.holidays.service import HolidayService
from leavedesk.leave.models import LeaveRequest
from leavedesk.leave.schemas import LeaveRequestCreate, LeaveRequestOut
from leavedesk.users.models import User

logger = logging.getLogger(__name__)

# Applicant roles that may not hold two requests over the same days
_OVERLAP_CHECKED_ROLES = (UserRole.employee, UserRole.hr)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: requests and listings."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def load_request(
        db: AsyncSession,
        leave_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> LeaveRequest:
        """Fetch a request with its applicant, re-reading any cached state."""
        query = (
            select(LeaveRequest)
            .where(LeaveRequest.id == leave_id)
            .options(selectinload(LeaveRequest.applicant))
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=LeaveRequest)
        leave_req = (await db.execute(query)).scalars().first()
        if leave_req is None:
            raise NotFoundException("LeaveRequest", str(leave_id))
        return leave_req

    @staticmethod
    async def _lock_applicant(db: AsyncSession, applicant_id: uuid.UUID) -> User:
        """Load the applicant row FOR UPDATE so concurrent requests serialise."""
        result = await db.execute(
            select(User)
            .where(User.id == applicant_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        applicant = result.scalars().first()
        if applicant is None:
            raise NotFoundException("User", str(applicant_id))
        return applicant

    # ─────────────────────────────────────────────────────────────────
    # Request Leave
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def request_leave(
        db: AsyncSession,
        applicant_id: uuid.UUID,
        data: LeaveRequestCreate,
    ) -> LeaveRequestOut:
        """Validate and store a pending leave request.

        Checks run in a fixed order and the first failure is raised:
        missing fields, date format, range order, past start, overlap,
        holiday collision, zero working days, balance.
        """

        # ── Required fields ─────────────────────────────────────────
        missing = [
            name
            for name, value in (
                ("leave_type", data.leave_type),
                ("start_date", data.start_date),
                ("end_date", data.end_date),
            )
            if _is_blank(value)
        ]
        if missing:
            raise BusinessRuleException(
                ErrorCode.missing_fields,
                f"Missing required fields: {', '.join(missing)}.",
                field=missing[0],
            )

        # ── Dates ───────────────────────────────────────────────────
        try:
            start = normalize_to_utc_day(data.start_date)
            end = normalize_to_utc_day(data.end_date)
        except InvalidDateError:
            raise BusinessRuleException(
                ErrorCode.invalid_date_format,
                "Invalid date format. Use YYYY-MM-DD.",
                field="dates",
            )

        if start > end:
            raise BusinessRuleException(
                ErrorCode.invalid_range,
                "Start date must be on or before end date.",
                field="dates",
            )

        if start < utc_today():
            raise BusinessRuleException(
                ErrorCode.past_date,
                "Start date cannot be in the past.",
                field="start_date",
            )

        # ── Applicant + overlap ─────────────────────────────────────
        applicant = await LeaveService._lock_applicant(db, applicant_id)

        if applicant.role in _OVERLAP_CHECKED_ROLES:
            overlap = await db.execute(
                select(LeaveRequest.id).where(
                    LeaveRequest.applicant_id == applicant.id,
                    LeaveRequest.start_date <= end,
                    LeaveRequest.end_date >= start,
                ).limit(1)
            )
            if overlap.first() is not None:
                raise BusinessRuleException(
                    ErrorCode.overlapping_request,
                    "You already have a leave request overlapping these dates.",
                    field="dates",
                )

        # ── Holidays ────────────────────────────────────────────────
        holidays = await HolidayService.get_holidays_in_range(db, start, end)
        if holidays:
            listed = ", ".join(f"{h.name} ({h.date.isoformat()})" for h in holidays)
            raise BusinessRuleException(
                ErrorCode.holiday_conflict,
                f"Leave range includes public holiday(s): {listed}.",
                field="dates",
            )

        working_days = count_working_days(start, end, {h.date for h in holidays})
        if working_days <= 0:
            raise BusinessRuleException(
                ErrorCode.no_working_days,
                "No working days in the selected range (weekends or holidays only).",
                field="dates",
            )

        # ── Balance ─────────────────────────────────────────────────
        if applicant.leave_balance <= 0:
            raise BusinessRuleException(
                ErrorCode.insufficient_balance,
                "You have no leave balance left.",
                field="balance",
            )
        if applicant.leave_balance < working_days:
            raise BusinessRuleException(
                ErrorCode.balance_too_low,
                f"You only have {applicant.leave_balance} days left.",
                field="balance",
            )

        # ── Create ──────────────────────────────────────────────────
        leave_request = LeaveRequest(
            applicant_id=applicant.id,
            leave_type=data.leave_type.strip(),
            start_date=start,
            end_date=end,
            working_days=working_days,
            comment=data.comment,
            status=LeaveStatus.pending,
        )
        db.add(leave_request)
        await db.flush()

        logger.info(
            "Leave %s requested by %s: %s..%s (%d working days)",
            leave_request.id, applicant.id, start, end, working_days,
        )

        leave_request = await LeaveService.load_request(db, leave_request.id)
        return LeaveRequestOut.model_validate(leave_request)

    # ─────────────────────────────────────────────────────────────────
    # List Leave Requests
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _base_query(status: Optional[LeaveStatus]):
        query = (
            select(LeaveRequest)
            .options(selectinload(LeaveRequest.applicant))
            .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id)
        )
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        return query

    @staticmethod
    async def list_mine(
        db: AsyncSession,
        user: User,
        status: Optional[LeaveStatus],
        params: PaginationParams,
    ) -> PaginatedResponse:
        """The caller's own requests, newest first."""
        query = LeaveService._base_query(status).where(
            LeaveRequest.applicant_id == user.id
        )
        return await paginate(db, query, params, transform=LeaveRequestOut.model_validate)

    @staticmethod
    async def list_for_role(
        db: AsyncSession,
        user: User,
        status: Optional[LeaveStatus],
        params: PaginationParams,
    ) -> PaginatedResponse:
        """Own requests plus those of the applicant roles the caller reviews.

        employee → own; hr → own + every employee's; management → own +
        every hr member's.
        """
        query = LeaveService._base_query(status)
        viewable_roles = LEAVE_VIEWABLE_APPLICANT_ROLES.get(user.role, ())
        if viewable_roles:
            reviewed = select(User.id).where(User.role.in_(viewable_roles))
            query = query.where(
                or_(
                    LeaveRequest.applicant_id == user.id,
                    LeaveRequest.applicant_id.in_(reviewed),
                )
            )
        else:
            query = query.where(LeaveRequest.applicant_id == user.id)
        return await paginate(db, query, params, transform=LeaveRequestOut.model_validate)
