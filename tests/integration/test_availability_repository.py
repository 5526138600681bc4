"""Test the SQL availability store against a real database."""

from datetime import time, timedelta
from uuid import uuid4

import pytest

from slotbook.core.database import build_engine, build_session_factory
from slotbook.core.exceptions import (
    InvalidExceptionError,
    InvalidScheduleError,
    UpstreamFetchError,
)
from slotbook.models.schedule_exception import ScheduleException as ScheduleExceptionRow
from slotbook.models.working_hours import WorkingHours
from slotbook.schemas.scheduling import (
    DateRange,
    ModifiedHoursException,
    OwnerType,
    SlotQuery,
    WeekDay,
)
from slotbook.services.repository import SqlAvailabilityStore
from slotbook.services.scheduling import AvailabilityService
from tests.fixtures.scheduling_fixtures import MONDAY, SUNDAY, at


@pytest.fixture
def sql_store(session_factory) -> SqlAvailabilityStore:
    return SqlAvailabilityStore(session_factory)


class TestSqlAvailabilityStore:
    @pytest.mark.asyncio
    async def test_get_business(self, sql_store, seeded_salon):
        business = await sql_store.get_business(seeded_salon["business"].uuid)

        assert business.id == seeded_salon["business"].uuid
        assert business.timezone == "Europe/Zurich"
        assert business.holiday_country is None

    @pytest.mark.asyncio
    async def test_get_unknown_business(self, sql_store, seeded_salon):
        assert await sql_store.get_business(uuid4()) is None

    @pytest.mark.asyncio
    async def test_business_weekly_schedule(self, sql_store, seeded_salon):
        schedule = await sql_store.get_weekly_schedule(
            OwnerType.BUSINESS, seeded_salon["business"].uuid
        )

        monday = schedule.days[WeekDay.MONDAY]
        assert monday.is_open
        assert (monday.open_time, monday.close_time) == (time(9, 0), time(17, 0))
        assert monday.lunch_break.start == time(12, 0)
        assert not schedule.days[WeekDay.SATURDAY].is_open

    @pytest.mark.asyncio
    async def test_staff_weekly_schedule(self, sql_store, seeded_salon):
        bob_schedule = await sql_store.get_weekly_schedule(
            OwnerType.STAFF, seeded_salon["bob"].uuid
        )
        alice_schedule = await sql_store.get_weekly_schedule(
            OwnerType.STAFF, seeded_salon["alice"].uuid
        )

        assert bob_schedule.open_days == [WeekDay.MONDAY]
        assert bob_schedule.days[WeekDay.MONDAY].lunch_break is None
        assert alice_schedule is None

    @pytest.mark.asyncio
    async def test_duplicate_weekday_rows_are_rejected(self, sql_store, seeded_salon, db):
        db.add(
            WorkingHours(
                owner_type=OwnerType.STAFF.value,
                owner_id=seeded_salon["bob"].id,
                weekday=WeekDay.MONDAY.name,
                start_time=time(14, 0),
                end_time=time(16, 0),
            )
        )
        await db.commit()

        with pytest.raises(InvalidScheduleError):
            await sql_store.get_weekly_schedule(OwnerType.STAFF, seeded_salon["bob"].uuid)

    @pytest.mark.asyncio
    async def test_get_exceptions_in_range(self, sql_store, seeded_salon):
        business_uuid = seeded_salon["business"].uuid

        inside = await sql_store.get_exceptions(
            OwnerType.BUSINESS, business_uuid, DateRange(start=SUNDAY, end=MONDAY)
        )
        outside = await sql_store.get_exceptions(
            OwnerType.BUSINESS, business_uuid, DateRange.single(MONDAY)
        )

        assert len(inside) == 1
        assert isinstance(inside[0], ModifiedHoursException)
        assert inside[0].start_time == time(10, 0)
        assert inside[0].reason == "Sunday opening"
        assert outside == []

    @pytest.mark.asyncio
    async def test_malformed_exception_row(self, sql_store, seeded_salon, db):
        db.add(
            ScheduleExceptionRow(
                owner_type=OwnerType.STAFF.value,
                owner_id=seeded_salon["alice"].id,
                date=MONDAY,
                kind="modified_hours",
            )
        )
        await db.commit()

        with pytest.raises(InvalidExceptionError):
            await sql_store.get_exceptions(
                OwnerType.STAFF, seeded_salon["alice"].uuid, DateRange.single(MONDAY)
            )

    @pytest.mark.asyncio
    async def test_get_service(self, sql_store, seeded_salon):
        service = await sql_store.get_service(seeded_salon["coloring"].uuid)

        assert service.business_id == seeded_salon["business"].uuid
        assert service.duration_minutes == 60
        assert service.buffer_after_minutes == 15

    @pytest.mark.asyncio
    async def test_get_employee(self, sql_store, seeded_salon):
        employee = await sql_store.get_employee(seeded_salon["alice"].uuid)

        assert employee.name == "Alice"
        assert employee.business_id == seeded_salon["business"].uuid
        assert employee.service_ids == {
            seeded_salon["haircut"].uuid,
            seeded_salon["coloring"].uuid,
        }
        assert employee.working_hours is None

    @pytest.mark.asyncio
    async def test_get_employees_for_service(self, sql_store, seeded_salon):
        employees = await sql_store.get_employees_for_service(
            seeded_salon["business"].uuid, seeded_salon["haircut"].uuid
        )

        # Carol is not bookable
        assert [employee.name for employee in employees] == ["Alice", "Bob"]

    @pytest.mark.asyncio
    async def test_get_appointments_excludes_cancelled(self, sql_store, seeded_salon):
        alice_uuid = seeded_salon["alice"].uuid

        active = await sql_store.get_appointments(alice_uuid, DateRange.single(MONDAY))
        everything = await sql_store.get_appointments(
            alice_uuid, DateRange.single(MONDAY), exclude_statuses=frozenset()
        )

        assert [a.start_datetime for a in active] == [at(MONDAY, 10)]
        assert len(everything) == 2
        assert active[0].employee_id == alice_uuid

    @pytest.mark.asyncio
    async def test_appointments_outside_range(self, sql_store, seeded_salon):
        appointments = await sql_store.get_appointments(
            seeded_salon["alice"].uuid, DateRange.single(MONDAY + timedelta(days=2))
        )
        assert appointments == []

    @pytest.mark.asyncio
    async def test_database_failure_is_reported_as_upstream_error(self, tmp_path):
        # Database without tables
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        store = SqlAvailabilityStore(build_session_factory(engine))

        with pytest.raises(UpstreamFetchError):
            await store.get_business(uuid4())

        await engine.dispose()


class TestAvailabilityOverDatabase:
    @pytest.mark.asyncio
    async def test_open_mode_slots(self, sql_store, seeded_salon):
        availability = AvailabilityService(sql_store, granularity_minutes=30)

        slots = await availability.get_available_slots(
            SlotQuery(
                business_id=seeded_salon["business"].uuid,
                service_id=seeded_salon["haircut"].uuid,
                date=MONDAY,
            )
        )

        counts = {slot.time: slot.available_employee_count for slot in slots}
        assert counts["09:00"] == 2
        assert counts["10:00"] == 1
        assert counts["13:00"] == 1
        assert "12:00" not in counts

    @pytest.mark.asyncio
    async def test_sunday_modified_hours(self, sql_store, seeded_salon):
        availability = AvailabilityService(sql_store, granularity_minutes=60)

        slots = await availability.get_available_slots(
            SlotQuery(
                business_id=seeded_salon["business"].uuid,
                service_id=seeded_salon["haircut"].uuid,
                date=SUNDAY,
                employee_id=seeded_salon["alice"].uuid,
            )
        )

        assert [slot.time for slot in slots] == ["10:00", "11:00", "12:00", "13:00"]
