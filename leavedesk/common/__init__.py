"""Common module — shared utilities for LeaveDesk."""

from leavedesk.common.calendar import (
    InvalidDateError,
    count_working_days,
    normalize_to_utc_day,
    utc_today,
)
from leavedesk.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ErrorCode,
    LeaveStatus,
    UserRole,
)
from leavedesk.common.exceptions import (
    AppException,
    BusinessRuleException,
    ConflictError,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    UnsupportedApplicantRoleException,
    ValidationException,
    register_exception_handlers,
)
from leavedesk.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Calendar
    "InvalidDateError",
    "count_working_days",
    "normalize_to_utc_day",
    "utc_today",
    # Constants / Enums
    "ErrorCode",
    "LeaveStatus",
    "UserRole",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "BusinessRuleException",
    "ConflictError",
    "ForbiddenException",
    "InvalidStateException",
    "NotFoundException",
    "UnsupportedApplicantRoleException",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
