"""Enums and constants for LeaveDesk — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    hr = "hr"
    management = "management"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


# ── Error taxonomy ──────────────────────────────────────────────────

class ErrorCode(str, enum.Enum):
    """Machine-readable error codes, used as the RFC 7807 ``type`` suffix."""

    missing_fields = "missing-fields"
    invalid_date_format = "invalid-date-format"
    invalid_range = "invalid-range"
    past_date = "past-date"
    overlapping_request = "overlapping-request"
    holiday_conflict = "holiday-conflict"
    no_working_days = "no-working-days"
    insufficient_balance = "insufficient-balance"
    balance_too_low = "balance-too-low"
    invalid_holiday_name = "invalid-holiday-name"
    not_found = "not-found"
    invalid_state = "invalid-state"
    forbidden = "forbidden"
    unsupported_applicant_role = "unsupported-applicant-role"
    duplicate_holiday = "duplicate-holiday"
    duplicate_user = "duplicate-user"
    validation_error = "validation-error"
    store_unavailable = "store-unavailable"


# ── Misc constants ──────────────────────────────────────────────────

LEAVE_VIEWABLE_APPLICANT_ROLES: dict[UserRole, tuple[UserRole, ...]] = {
    UserRole.employee: (),
    UserRole.hr: (UserRole.employee,),
    UserRole.management: (UserRole.hr,),
}

ACCRUAL_ROLES: tuple[UserRole, ...] = (UserRole.employee, UserRole.hr)

HOLIDAY_NAME_MIN_LENGTH = 3
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
