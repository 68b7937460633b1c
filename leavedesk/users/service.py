"""User service — directory lookups and the monthly balance accrual."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import ACCRUAL_ROLES, UserRole
from leavedesk.common.exceptions import ForbiddenException, NotFoundException
from leavedesk.users.models import User
from leavedesk.users.schemas import UserOut

logger = logging.getLogger(__name__)

_ROLE_ORDER = case(
    (User.role == UserRole.employee, 0),
    (User.role == UserRole.hr, 1),
    else_=2,
)


class UserService:
    """Async user operations."""

    @staticmethod
    async def list_users(db: AsyncSession) -> list[UserOut]:
        """Every user, grouped by role then sorted by name."""
        result = await db.execute(select(User).order_by(_ROLE_ORDER, User.name))
        return [UserOut.model_validate(u) for u in result.scalars().all()]

    @staticmethod
    async def get_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        requester: User,
    ) -> UserOut:
        if requester.role == UserRole.employee and requester.id != user_id:
            raise ForbiddenException("Employees can only view their own profile.")
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundException("User", str(user_id))
        return UserOut.model_validate(user)

    @staticmethod
    async def accrue_monthly(db: AsyncSession, days: int) -> int:
        """Credit *days* to every employee and hr balance; returns rows touched."""
        result = await db.execute(
            update(User)
            .where(User.role.in_(ACCRUAL_ROLES))
            .values(leave_balance=User.leave_balance + days)
            .execution_options(synchronize_session=False)
        )
        logger.info("Monthly accrual: +%d day(s) for %d user(s)", days, result.rowcount)
        return result.rowcount
