"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out                → response bodies (read)
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from leavedesk.common.constants import LeaveStatus, UserRole
from leavedesk.users.schemas import UserBrief


# ═════════════════════════════════════════════════════════════════════
# Leave Request
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Body for requesting leave.

    Every field is optional here so that missing or malformed values are
    reported with the leave error codes rather than a generic 422.
    """

    leave_type: Optional[str] = Field(None, max_length=50)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    comment: Optional[str] = Field(None, max_length=2000)


class LeaveDecisionRequest(BaseModel):
    remarks: Optional[str] = Field(None, max_length=2000)


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    applicant_id: uuid.UUID
    applicant: Optional[UserBrief] = None
    leave_type: str
    start_date: date
    end_date: date
    working_days: int
    comment: Optional[str] = None
    status: LeaveStatus
    approver_id: Optional[uuid.UUID] = None
    rejected_by: Optional[UserRole] = None
    system_remarks: Optional[str] = None
    reviewer_remarks: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class LeaveDecisionOut(BaseModel):
    """Result of an approve / reject / cancel, with the applicant's new balance."""

    leave: LeaveRequestOut
    applicant_balance: int
