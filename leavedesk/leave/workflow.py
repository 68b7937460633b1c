"""Approval state machine — who may decide a request, and the balance moves that go with it.

Status and balance change together in the caller's transaction. Every write
is conditional on the state it expects, so a concurrent decision or a
concurrent cascade makes the later writer fail instead of double-counting.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import ErrorCode, LeaveStatus, UserRole
from leavedesk.common.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    UnsupportedApplicantRoleException,
)
from leavedesk.leave.models import LeaveRequest
from leavedesk.leave.schemas import LeaveDecisionOut, LeaveRequestOut
from leavedesk.leave.service import LeaveService
from leavedesk.users.models import User

logger = logging.getLogger(__name__)

# Applicant role → the only role allowed to approve or reject it
APPROVER_ROLE_FOR_APPLICANT: dict[UserRole, UserRole] = {
    UserRole.employee: UserRole.hr,
    UserRole.hr: UserRole.management,
}


def required_approver_role(applicant_role: UserRole) -> UserRole:
    try:
        return APPROVER_ROLE_FOR_APPLICANT[applicant_role]
    except KeyError:
        raise UnsupportedApplicantRoleException(applicant_role)


def _check_gate(applicant_role: UserRole, actor: User) -> None:
    required = required_approver_role(applicant_role)
    if actor.role != required:
        raise ForbiddenException(
            f"Only {required.value} can decide leave requests from "
            f"{applicant_role.value} applicants.",
        )


async def _flip_status(
    db: AsyncSession,
    leave_req: LeaveRequest,
    *,
    expected: LeaveStatus,
    new_status: LeaveStatus,
    actor: User,
    remarks: Optional[str] = None,
) -> None:
    """Move the request to *new_status* only if it is still *expected*."""
    result = await db.execute(
        update(LeaveRequest)
        .where(
            LeaveRequest.id == leave_req.id,
            LeaveRequest.status == expected,
        )
        .values(
            status=new_status,
            approver_id=actor.id,
            reviewer_remarks=remarks,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InvalidStateException(
            f"Leave request is no longer {expected.value}.",
        )


async def _credit(db: AsyncSession, user_id: uuid.UUID, days: int) -> None:
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(leave_balance=User.leave_balance + days)
        .execution_options(synchronize_session=False)
    )


async def _decision_response(
    db: AsyncSession,
    leave_id: uuid.UUID,
) -> LeaveDecisionOut:
    leave_req = await LeaveService.load_request(db, leave_id)
    await db.refresh(leave_req.applicant)
    return LeaveDecisionOut(
        leave=LeaveRequestOut.model_validate(leave_req),
        applicant_balance=leave_req.applicant.leave_balance,
    )


# ═════════════════════════════════════════════════════════════════════
# ApprovalService
# ═════════════════════════════════════════════════════════════════════


class ApprovalService:
    """Approve, reject and cancel leave requests."""

    @staticmethod
    async def approve(
        db: AsyncSession,
        leave_id: uuid.UUID,
        actor: User,
        remarks: Optional[str] = None,
    ) -> LeaveDecisionOut:
        """Approve a pending request and debit the applicant's balance."""
        leave_req = await LeaveService.load_request(db, leave_id, for_update=True)

        if leave_req.status != LeaveStatus.pending:
            raise InvalidStateException(
                f"Leave request is already {leave_req.status.value}.",
            )

        applicant = leave_req.applicant
        if applicant is None:
            raise NotFoundException("Applicant", str(leave_req.applicant_id))
        _check_gate(applicant.role, actor)

        wd = leave_req.working_days
        debit = await db.execute(
            update(User)
            .where(User.id == applicant.id, User.leave_balance >= wd)
            .values(leave_balance=User.leave_balance - wd)
            .returning(User.leave_balance)
            .execution_options(synchronize_session=False)
        )
        remaining = debit.scalar_one_or_none()
        if remaining is None:
            await db.refresh(applicant)
            raise BusinessRuleException(
                ErrorCode.insufficient_balance,
                f"User has only {applicant.leave_balance} days left.",
                field="balance",
            )

        await _flip_status(
            db, leave_req,
            expected=LeaveStatus.pending,
            new_status=LeaveStatus.approved,
            actor=actor,
            remarks=remarks,
        )

        logger.info(
            "Leave %s approved by %s; %d day(s) debited, %d remaining",
            leave_req.id, actor.id, wd, remaining,
        )
        return await _decision_response(db, leave_req.id)

    @staticmethod
    async def reject_or_cancel(
        db: AsyncSession,
        leave_id: uuid.UUID,
        actor: User,
        remarks: Optional[str] = None,
    ) -> LeaveDecisionOut:
        """Reject a pending request, or cancel an approved one and refund it."""
        leave_req = await LeaveService.load_request(db, leave_id, for_update=True)

        applicant = leave_req.applicant
        if applicant is None:
            raise NotFoundException("Applicant", str(leave_req.applicant_id))
        _check_gate(applicant.role, actor)

        if leave_req.status == LeaveStatus.pending:
            await _flip_status(
                db, leave_req,
                expected=LeaveStatus.pending,
                new_status=LeaveStatus.rejected,
                actor=actor,
                remarks=remarks,
            )
            logger.info("Leave %s rejected by %s", leave_req.id, actor.id)

        elif leave_req.status == LeaveStatus.approved:
            await _credit(db, applicant.id, leave_req.working_days)
            await _flip_status(
                db, leave_req,
                expected=LeaveStatus.approved,
                new_status=LeaveStatus.cancelled,
                actor=actor,
                remarks=remarks,
            )
            logger.info(
                "Leave %s cancelled by %s; %d day(s) refunded",
                leave_req.id, actor.id, leave_req.working_days,
            )

        else:
            raise InvalidStateException(
                f"Leave request is neither pending nor approved "
                f"(current status: {leave_req.status.value}).",
            )

        return await _decision_response(db, leave_req.id)
