"""Monthly accrual scheduler — a background task started from the app lifespan.

Wakes at 00:00 UTC on the 1st of each month and credits every employee
and hr balance with ``MONTHLY_ACCRUAL_DAYS``.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from leavedesk.config import settings
from leavedesk.database import async_session_factory
from leavedesk.users.service import UserService

logger = logging.getLogger(__name__)


def next_month_start(now: datetime) -> datetime:
    """00:00 UTC on the first day of the month after *now*."""
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)


async def run_monthly_accrual() -> int:
    """Run one accrual in its own transaction."""
    async with async_session_factory() as session:
        try:
            updated = await UserService.accrue_monthly(
                session, settings.MONTHLY_ACCRUAL_DAYS,
            )
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    return updated


async def monthly_accrual_scheduler() -> None:
    """Loop forever: sleep until the next month starts, then accrue."""
    logger.info("Monthly accrual scheduler started")
    while True:
        now = datetime.now(timezone.utc)
        wake_at = next_month_start(now)
        logger.info("Next monthly accrual at %s", wake_at.isoformat())
        await asyncio.sleep((wake_at - now).total_seconds())

        try:
            await run_monthly_accrual()
        except SQLAlchemyError:
            # Retried on the next cycle; balances are untouched on failure
            logger.exception("Monthly accrual failed")
