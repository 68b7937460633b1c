"""Holiday cascade — retroactively reject approved leave that spans a new holiday.

Runs inside the caller's transaction. Refunds are applied before the status
flips, and the affected rows stay locked until commit.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import LeaveStatus, UserRole
from leavedesk.leave.models import LeaveRequest
from leavedesk.users.models import User

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    """Outcome of one cascade run."""

    holiday_date: date
    rejected_leave_ids: list[uuid.UUID] = field(default_factory=list)
    refunded_days: dict[uuid.UUID, int] = field(default_factory=dict)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected_leave_ids)


def _rejecting_role(applicant_role: UserRole) -> UserRole:
    """Role recorded in ``rejected_by``: the tier that would have approved it."""
    if applicant_role == UserRole.employee:
        return UserRole.hr
    return UserRole.management


def build_system_remarks(holiday_date: date, holiday_name: Optional[str]) -> str:
    label = f"public holiday {holiday_name}" if holiday_name else "public holiday"
    return f"Auto-rejected: {label} declared on {holiday_date.isoformat()}"


async def on_holiday_date_changed(
    db: AsyncSession,
    holiday_date: date,
    holiday_name: Optional[str] = None,
) -> CascadeResult:
    """Reject every approved request whose range contains *holiday_date*.

    Each applicant is credited the ``working_days`` of their affected
    requests. Pending requests are left alone and may still be approved.
    """
    result = CascadeResult(holiday_date=holiday_date)

    # Pending rows are locked too so an approval already in flight commits
    # before they are read; only approved rows are acted on.
    rows = await db.execute(
        select(LeaveRequest, User.role)
        .join(User, User.id == LeaveRequest.applicant_id)
        .where(
            LeaveRequest.status.in_((LeaveStatus.pending, LeaveStatus.approved)),
            LeaveRequest.start_date <= holiday_date,
            LeaveRequest.end_date >= holiday_date,
        )
        .order_by(LeaveRequest.created_at)
        .with_for_update(of=LeaveRequest)
        .execution_options(populate_existing=True)
    )
    affected = [
        (leave_req, role)
        for leave_req, role in rows.all()
        if leave_req.status == LeaveStatus.approved
    ]
    if not affected:
        return result

    # ── Credits first, one increment per applicant ──────────────────
    credits: dict[uuid.UUID, int] = defaultdict(int)
    for leave_req, _role in affected:
        credits[leave_req.applicant_id] += leave_req.working_days

    for applicant_id, days in credits.items():
        await db.execute(
            update(User)
            .where(User.id == applicant_id)
            .values(leave_balance=User.leave_balance + days)
            .execution_options(synchronize_session=False)
        )
    result.refunded_days = dict(credits)

    # ── Then status flips, guarded on the approved state ────────────
    now = datetime.now(timezone.utc)
    remarks = build_system_remarks(holiday_date, holiday_name)
    for leave_req, applicant_role in affected:
        flipped = await db.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == leave_req.id,
                LeaveRequest.status == LeaveStatus.approved,
            )
            .values(
                status=LeaveStatus.rejected,
                rejected_by=_rejecting_role(applicant_role),
                system_remarks=remarks,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount:
            result.rejected_leave_ids.append(leave_req.id)

    # Loaded instances are stale after the bulk updates
    for leave_req, _role in affected:
        await db.refresh(leave_req)

    logger.info(
        "Holiday cascade for %s rejected %d approved leave(s), refunded %d user(s)",
        holiday_date.isoformat(),
        result.rejected_count,
        len(result.refunded_days),
    )
    return result
