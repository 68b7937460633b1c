"""Custom exceptions and RFC 7807 Problem Detail error handlers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from leavedesk.common.constants import ErrorCode, UserRole

BASE_ERROR_URI = "https://leavedesk.local/errors"

logger = logging.getLogger(__name__)


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        super().__init__(detail)

    @property
    def code(self) -> str:
        return self.error_type


class BusinessRuleException(AppException):
    """400 — well-formed input that breaks a leave or holiday rule."""

    def __init__(
        self,
        code: ErrorCode,
        detail: str,
        *,
        field: Optional[str] = None,
    ) -> None:
        super().__init__(
            status_code=400,
            error_type=code.value,
            title=code.value.replace("-", " ").capitalize(),
            detail=detail,
            errors={field: [detail]} if field else None,
        )


class NotFoundException(AppException):
    """404 — entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type=ErrorCode.not_found.value,
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class InvalidStateException(AppException):
    """409 — the entity is not in a state that allows the transition."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=409,
            error_type=ErrorCode.invalid_state.value,
            title="Invalid State",
            detail=detail,
        )


class ConflictError(AppException):
    """409 — unique-constraint / duplicate."""

    def __init__(
        self,
        field: str,
        value: Any,
        *,
        code: ErrorCode = ErrorCode.duplicate_user,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(
            status_code=409,
            error_type=code.value,
            title="Conflict",
            detail=detail or f"An entry with {field}='{value}' already exists.",
            errors={field: [f"'{value}' is already in use."]},
        )


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type=ErrorCode.forbidden.value,
            title="Forbidden",
            detail=detail,
        )


class UnsupportedApplicantRoleException(AppException):
    """403 — no approver tier exists for the applicant's role."""

    def __init__(self, role: UserRole | str) -> None:
        role_value = role.value if isinstance(role, UserRole) else role
        super().__init__(
            status_code=403,
            error_type=ErrorCode.unsupported_applicant_role.value,
            title="Unsupported Applicant Role",
            detail=f"Approvals for applicant role '{role_value}' are not supported.",
        )


class ValidationException(AppException):
    """422 — business-logic validation failures."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            error_type=ErrorCode.validation_error.value,
            title="Validation Error",
            detail="One or more fields failed validation.",
            errors=errors,
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def _build_problem_detail(exc: AppException, request: Request) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if exc.errors:
        body["errors"] = exc.errors
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_problem_detail(exc, request),
        media_type="application/problem+json",
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content={
            "type": f"{BASE_ERROR_URI}/{ErrorCode.validation_error.value}",
            "title": "Validation Error",
            "status": 422,
            "detail": "Request validation failed.",
            "instance": str(request.url.path),
            "errors": field_errors,
        },
        media_type="application/problem+json",
    )


async def _handle_store_error(
    request: Request,
    exc: SQLAlchemyError,
) -> JSONResponse:
    logger.error(
        "Store failure on %s %s", request.method, request.url.path, exc_info=exc,
    )
    return JSONResponse(
        status_code=503,
        content={
            "type": f"{BASE_ERROR_URI}/{ErrorCode.store_unavailable.value}",
            "title": "Store Unavailable",
            "status": 503,
            "detail": "The record store could not complete the request.",
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _handle_store_error)         # type: ignore[arg-type]
