"""Leave ORM model: LeaveRequest."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leavedesk.common.constants import LeaveStatus, UserRole
from leavedesk.database import Base


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.CheckConstraint("start_date <= end_date", name="ck_leave_requests_date_order"),
        sa.CheckConstraint("working_days > 0", name="ck_leave_requests_working_days_positive"),
        sa.Index("ix_leave_requests_applicant_dates", "applicant_id", "start_date", "end_date"),
        sa.Index("ix_leave_requests_status_dates", "status", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    applicant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False
    )
    leave_type: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    working_days: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(LeaveStatus, name="leave_status", create_type=False),
        nullable=False,
        default=LeaveStatus.pending,
    )
    approver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    # Set only when a holiday cascade rejects an approved request
    rejected_by: Mapped[Optional[UserRole]] = mapped_column(
        sa.Enum(UserRole, name="user_role", create_type=False)
    )
    system_remarks: Mapped[Optional[str]] = mapped_column(sa.Text)
    reviewer_remarks: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    applicant: Mapped["User"] = relationship(
        back_populates="leave_requests", foreign_keys=[applicant_id]
    )
    approver: Mapped[Optional["User"]] = relationship(foreign_keys=[approver_id])
