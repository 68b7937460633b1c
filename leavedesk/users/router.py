"""Users router — directory listing and single-user lookup."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, require_role
from leavedesk.common.constants import UserRole
from leavedesk.database import get_db
from leavedesk.users.models import User
from leavedesk.users.schemas import UserOut
from leavedesk.users.service import UserService

router = APIRouter(prefix="", tags=["users"])


@router.get("", response_model=list[UserOut])
async def list_users(
    user: User = Depends(require_role(UserRole.hr, UserRole.management)),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.list_users(db)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Employees may only read their own record."""
    return await UserService.get_user(db, user_id, user)
