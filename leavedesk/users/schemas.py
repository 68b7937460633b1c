"""User Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from leavedesk.common.constants import UserRole


class UserBrief(BaseModel):
    """Minimal user info embedded in leave responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: UserRole


class UserOut(UserBrief):
    """Full user representation (never includes the password hash)."""

    leave_balance: int
    joined_at: datetime


class AccrualResult(BaseModel):
    days_added: int
    users_updated: int
