"""Holiday service — range lookups for the leave engine and hr-managed CRUD.

Adding a holiday, or moving one to another date, runs the leave cascade in
the same transaction.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import extract, select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.calendar import InvalidDateError, normalize_to_utc_day, utc_today
from leavedesk.common.constants import HOLIDAY_NAME_MIN_LENGTH, ErrorCode
from leavedesk.common.exceptions import (
    BusinessRuleException,
    ConflictError,
    NotFoundException,
)
from leavedesk.holidays.models import PublicHoliday
from leavedesk.holidays.schemas import (
    HolidayCreate,
    HolidayMutationResult,
    HolidayOut,
    HolidayUpdate,
)
from leavedesk.leave.cascade import on_holiday_date_changed
from leavedesk.users.models import User

logger = logging.getLogger(__name__)


def _parse_holiday_date(raw: str) -> date:
    try:
        holiday_date = normalize_to_utc_day(raw)
    except InvalidDateError:
        raise BusinessRuleException(
            ErrorCode.invalid_date_format,
            "Invalid date format. Use YYYY-MM-DD.",
            field="date",
        )
    if holiday_date < utc_today():
        raise BusinessRuleException(
            ErrorCode.past_date,
            "Holiday date cannot be in the past.",
            field="date",
        )
    return holiday_date


def _clean_holiday_name(raw: str) -> str:
    name = raw.strip()
    if len(name) < HOLIDAY_NAME_MIN_LENGTH:
        raise BusinessRuleException(
            ErrorCode.invalid_holiday_name,
            f"Holiday name must be at least {HOLIDAY_NAME_MIN_LENGTH} characters.",
            field="name",
        )
    return name


class HolidayService:
    """Async public-holiday operations."""

    @staticmethod
    async def get_holidays_in_range(
        db: AsyncSession,
        start: date,
        end: date,
    ) -> list[PublicHoliday]:
        """Holidays with ``start <= date <= end``, ordered by date."""
        result = await db.execute(
            select(PublicHoliday)
            .where(PublicHoliday.date >= start, PublicHoliday.date <= end)
            .order_by(PublicHoliday.date, PublicHoliday.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_holidays(
        db: AsyncSession,
        year: Optional[int] = None,
    ) -> list[HolidayOut]:
        query = select(PublicHoliday).order_by(PublicHoliday.date, PublicHoliday.name)
        if year is not None:
            query = query.where(extract("year", PublicHoliday.date) == year)
        result = await db.execute(query)
        return [HolidayOut.model_validate(h) for h in result.scalars().all()]

    @staticmethod
    async def _ensure_unique(
        db: AsyncSession,
        holiday_date: date,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(PublicHoliday.id).where(
            PublicHoliday.date == holiday_date,
            PublicHoliday.name == name,
        )
        if exclude_id is not None:
            query = query.where(PublicHoliday.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError(
                "name",
                name,
                code=ErrorCode.duplicate_holiday,
                detail=f"Holiday '{name}' already exists on {holiday_date.isoformat()}.",
            )

    @staticmethod
    async def add_holiday(
        db: AsyncSession,
        actor: User,
        data: HolidayCreate,
    ) -> HolidayMutationResult:
        if not (data.date and data.date.strip()) or not (data.name and data.name.strip()):
            raise BusinessRuleException(
                ErrorCode.missing_fields, "Both date and name are required.",
            )

        holiday_date = _parse_holiday_date(data.date)
        name = _clean_holiday_name(data.name)
        await HolidayService._ensure_unique(db, holiday_date, name)

        holiday = PublicHoliday(date=holiday_date, name=name, created_by=actor.id)
        db.add(holiday)
        await db.flush()
        logger.info("Holiday %s added on %s by %s", name, holiday_date, actor.id)

        cascade = await on_holiday_date_changed(db, holiday_date, name)
        return HolidayMutationResult(
            holiday=HolidayOut.model_validate(holiday),
            auto_rejected_leaves=cascade.rejected_count,
        )

    @staticmethod
    async def update_holiday(
        db: AsyncSession,
        holiday_id: uuid.UUID,
        actor: User,
        data: HolidayUpdate,
    ) -> HolidayMutationResult:
        holiday = await db.get(PublicHoliday, holiday_id)
        if holiday is None:
            raise NotFoundException("Holiday", str(holiday_id))

        new_date = holiday.date
        new_name = holiday.name
        if data.date is not None and data.date.strip():
            new_date = _parse_holiday_date(data.date)
        if data.name is not None and data.name.strip():
            new_name = _clean_holiday_name(data.name)

        date_changed = new_date != holiday.date
        if date_changed or new_name != holiday.name:
            await HolidayService._ensure_unique(db, new_date, new_name, exclude_id=holiday.id)

        holiday.date = new_date
        holiday.name = new_name
        await db.flush()
        await db.refresh(holiday)
        logger.info("Holiday %s updated by %s", holiday.id, actor.id)

        rejected = 0
        if date_changed:
            cascade = await on_holiday_date_changed(db, new_date, new_name)
            rejected = cascade.rejected_count
        return HolidayMutationResult(
            holiday=HolidayOut.model_validate(holiday),
            auto_rejected_leaves=rejected,
        )

    @staticmethod
    async def delete_holiday(db: AsyncSession, holiday_id: uuid.UUID) -> None:
        """Delete a holiday. Leaves rejected by an earlier cascade stay rejected."""
        holiday = await db.get(PublicHoliday, holiday_id)
        if holiday is None:
            raise NotFoundException("Holiday", str(holiday_id))
        await db.delete(holiday)
        await db.flush()
        logger.info("Holiday %s deleted", holiday_id)
