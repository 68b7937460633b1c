"""Holiday cascade tests — approved leave spanning a newly declared holiday is
rejected and refunded; everything else is left alone.
"""

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import LeaveStatus, UserRole
from leavedesk.holidays.schemas import HolidayCreate, HolidayUpdate
from leavedesk.holidays.service import HolidayService
from leavedesk.leave.cascade import build_system_remarks, on_holiday_date_changed
from leavedesk.leave.models import LeaveRequest
from leavedesk.leave.schemas import LeaveRequestCreate
from leavedesk.leave.service import LeaveService
from leavedesk.leave.workflow import ApprovalService
from tests.conftest import auth_headers_for, next_monday, seed_user


async def _approved(db: AsyncSession, applicant, approver, start: date, days: int):
    leave = await LeaveService.request_leave(db, applicant.id, LeaveRequestCreate(
        leave_type="casual",
        start_date=start.isoformat(),
        end_date=(start + timedelta(days=days - 1)).isoformat(),
    ))
    await ApprovalService.approve(db, leave.id, approver)
    return leave


async def _reload(db: AsyncSession, leave_id) -> LeaveRequest:
    row = await db.get(LeaveRequest, leave_id)
    await db.refresh(row)
    return row


class TestSystemRemarks:

    def test_names_holiday_and_date(self):
        assert build_system_remarks(date(2026, 5, 1), "Labour Day") == (
            "Auto-rejected: public holiday Labour Day declared on 2026-05-01"
        )

    def test_without_name(self):
        assert build_system_remarks(date(2026, 5, 1), None) == (
            "Auto-rejected: public holiday declared on 2026-05-01"
        )


class TestCascadeHook:

    async def test_noop_when_nothing_overlaps(self, db: AsyncSession):
        result = await on_holiday_date_changed(db, next_monday(), "Quiet Day")
        assert result.rejected_count == 0
        assert result.refunded_days == {}

    async def test_rejects_and_refunds_employee_leave(self, db: AsyncSession):
        emp = await seed_user(db, leave_balance=10)
        hr = await seed_user(db, role=UserRole.hr)
        monday = next_monday()
        leave = await _approved(db, emp, hr, monday, days=5)
        await db.refresh(emp)
        assert emp.leave_balance == 5

        result = await on_holiday_date_changed(db, monday + timedelta(days=2), "Midweek Day")

        assert result.rejected_leave_ids == [leave.id]
        assert result.refunded_days == {emp.id: 5}
        await db.refresh(emp)
        assert emp.leave_balance == 10

        row = await _reload(db, leave.id)
        assert row.status == LeaveStatus.rejected
        assert row.rejected_by == UserRole.hr
        assert row.system_remarks == build_system_remarks(
            monday + timedelta(days=2), "Midweek Day",
        )

    async def test_hr_leave_marked_rejected_by_management(self, db: AsyncSession):
        hr = await seed_user(db, role=UserRole.hr, leave_balance=5)
        boss = await seed_user(db, role=UserRole.management)
        monday = next_monday()
        leave = await _approved(db, hr, boss, monday, days=2)

        await on_holiday_date_changed(db, monday, "Opening Day")

        row = await _reload(db, leave.id)
        assert row.status == LeaveStatus.rejected
        assert row.rejected_by == UserRole.management

    async def test_boundary_days_are_inside_range(self, db: AsyncSession):
        emp = await seed_user(db, leave_balance=10)
        hr = await seed_user(db, role=UserRole.hr)
        monday = next_monday()
        first = await _approved(db, emp, hr, monday, days=2)
        second = await _approved(db, emp, hr, monday + timedelta(weeks=1), days=2)

        # Last day of the first leave only
        result = await on_holiday_date_changed(db, monday + timedelta(days=1), "Edge Day")

        assert result.rejected_leave_ids == [first.id]
        assert (await _reload(db, second.id)).status == LeaveStatus.approved

    async def test_pending_and_cancelled_untouched(self, db: AsyncSession):
        emp = await seed_user(db, leave_balance=10)
        other = await seed_user(db, leave_balance=10)
        hr = await seed_user(db, role=UserRole.hr)
        monday = next_monday()

        pending = await LeaveService.request_leave(db, emp.id, LeaveRequestCreate(
            leave_type="casual",
            start_date=monday.isoformat(),
            end_date=monday.isoformat(),
        ))
        cancelled = await _approved(db, other, hr, monday, days=1)
        await ApprovalService.reject_or_cancel(db, cancelled.id, hr)

        result = await on_holiday_date_changed(db, monday, "Cold Day")

        assert result.rejected_count == 0
        assert (await _reload(db, pending.id)).status == LeaveStatus.pending
        assert (await _reload(db, cancelled.id)).status == LeaveStatus.cancelled
        await db.refresh(other)
        assert other.leave_balance == 10

    async def test_pending_left_alone_then_caught_once_approved(self, db: AsyncSession):
        """A request pending when the holiday lands can be approved later;
        the next cascade over that date rejects and refunds it."""
        emp = await seed_user(db, leave_balance=10)
        hr = await seed_user(db, role=UserRole.hr)
        monday = next_monday()
        wednesday = monday + timedelta(days=2)

        leave = await LeaveService.request_leave(db, emp.id, LeaveRequestCreate(
            leave_type="casual",
            start_date=monday.isoformat(),
            end_date=(monday + timedelta(days=4)).isoformat(),
        ))
        first = await on_holiday_date_changed(db, wednesday, "Midweek Day")
        assert first.rejected_count == 0

        await ApprovalService.approve(db, leave.id, hr)
        await db.refresh(emp)
        assert emp.leave_balance == 5

        second = await on_holiday_date_changed(db, wednesday, "Midweek Day")
        assert second.rejected_leave_ids == [leave.id]
        assert (await _reload(db, leave.id)).status == LeaveStatus.rejected
        await db.refresh(emp)
        assert emp.leave_balance == 10

    async def test_multiple_applicants_each_refunded(self, db: AsyncSession):
        hr = await seed_user(db, role=UserRole.hr, leave_balance=10)
        boss = await seed_user(db, role=UserRole.management)
        emps = [await seed_user(db, leave_balance=10) for _ in range(3)]
        monday = next_monday()
        for i, emp in enumerate(emps):
            await _approved(db, emp, hr, monday, days=i + 1)
        await _approved(db, hr, boss, monday, days=3)

        result = await on_holiday_date_changed(db, monday, "Big Day")

        assert result.rejected_count == 4
        for emp in emps:
            await db.refresh(emp)
            assert emp.leave_balance == 10
        await db.refresh(hr)
        assert hr.leave_balance == 10


# ═════════════════════════════════════════════════════════════════════
# Cascade through holiday CRUD
# ═════════════════════════════════════════════════════════════════════


class TestCascadeFromHolidayService:

    async def test_add_holiday_fires_cascade(self, db: AsyncSession):
        emp = await seed_user(db, leave_balance=10)
        hr = await seed_user(db, role=UserRole.hr)
        monday = next_monday()
        leave = await _approved(db, emp, hr, monday, days=3)

        result = await HolidayService.add_holiday(
            db, hr, HolidayCreate(date=(monday + timedelta(days=1)).isoformat(), name="Snap Day"),
        )

        assert result.auto_rejected_leaves == 1
        assert (await _reload(db, leave.id)).status == LeaveStatus.rejected
        await db.refresh(emp)
        assert emp.leave_balance == 10

    async def test_moving_holiday_fires_cascade_on_new_date(self, db: AsyncSession):
        emp = await seed_user(db, leave_balance=10)
        hr = await seed_user(db, role=UserRole.hr)
        monday = next_monday()
        created = await HolidayService.add_holiday(
            db, hr, HolidayCreate(date=(monday + timedelta(weeks=3)).isoformat(), name="Float Day"),
        )
        leave = await _approved(db, emp, hr, monday, days=2)

        result = await HolidayService.update_holiday(
            db, created.holiday.id, hr, HolidayUpdate(date=monday.isoformat()),
        )

        assert result.auto_rejected_leaves == 1
        assert (await _reload(db, leave.id)).status == LeaveStatus.rejected

    async def test_rename_only_does_not_cascade(self, db: AsyncSession):
        emp = await seed_user(db, leave_balance=10)
        hr = await seed_user(db, role=UserRole.hr)
        monday = next_monday()
        leave = await _approved(db, emp, hr, monday + timedelta(weeks=1), days=1)
        created = await HolidayService.add_holiday(
            db, hr, HolidayCreate(date=monday.isoformat(), name="Old Name"),
        )

        result = await HolidayService.update_holiday(
            db, created.holiday.id, hr, HolidayUpdate(name="New Name"),
        )

        assert result.auto_rejected_leaves == 0
        assert result.holiday.name == "New Name"
        assert (await _reload(db, leave.id)).status == LeaveStatus.approved

    async def test_delete_does_not_restore(self, db: AsyncSession):
        emp = await seed_user(db, leave_balance=10)
        hr = await seed_user(db, role=UserRole.hr)
        monday = next_monday()
        leave = await _approved(db, emp, hr, monday, days=1)
        created = await HolidayService.add_holiday(
            db, hr, HolidayCreate(date=monday.isoformat(), name="Gone Day"),
        )

        await HolidayService.delete_holiday(db, created.holiday.id)

        assert (await _reload(db, leave.id)).status == LeaveStatus.rejected


class TestCascadeAPI:

    async def test_post_holiday_reports_auto_rejections(self, client, db):
        emp = await seed_user(db, leave_balance=10)
        hr = await seed_user(db, role=UserRole.hr)
        monday = next_monday()
        leave = await _approved(db, emp, hr, monday, days=2)
        headers = await auth_headers_for(db, hr)

        resp = await client.post(
            "/api/v1/holidays",
            json={"date": monday.isoformat(), "name": "Launch Day"},
            headers=headers,
        )
        assert resp.status_code == 201
        assert resp.json()["auto_rejected_leaves"] == 1

        resp = await client.get("/api/v1/leaves/mine", headers=await auth_headers_for(db, emp))
        row = next(r for r in resp.json()["data"] if r["id"] == str(leave.id))
        assert row["status"] == "rejected"
        assert row["rejected_by"] == "hr"
        assert "Launch Day" in row["system_remarks"]
