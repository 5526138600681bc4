from contextlib import asynccontextmanager
from datetime import datetime, time, timedelta
from typing import AbstractSet, AsyncIterator, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError
from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from slotbook.core.exceptions import InvalidScheduleError, UpstreamFetchError
from slotbook.models.appointment import Appointment
from slotbook.models.business import Business
from slotbook.models.schedule_exception import (
    ScheduleException as ScheduleExceptionRow,
)
from slotbook.models.service import Service
from slotbook.models.staff import Staff
from slotbook.models.staff_service import StaffService
from slotbook.models.working_hours import WorkingHours
from slotbook.schemas.scheduling import (
    AppointmentStatus,
    BookedAppointment,
    BusinessInfo,
    DateRange,
    DayRule,
    EmployeeInfo,
    OwnerType,
    ScheduleException,
    ServiceInfo,
    WeekDay,
    WeeklySchedule,
    parse_schedule_exception,
)
from slotbook.services.scheduling.store import DEFAULT_EXCLUDED_STATUSES

logger = structlog.get_logger(__name__)


class SqlAvailabilityStore:
    """Availability store backed by the relational models.

    Every call opens its own session so that concurrent employee fetches never
    share one.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("Availability query failed", operation=operation, exc_info=e)
            raise UpstreamFetchError(operation, e) from e

    async def get_business(self, business_id: UUID) -> Optional[BusinessInfo]:
        async with self._session("business") as session:
            result = await session.execute(
                select(Business).where(
                    and_(Business.uuid == business_id, Business.is_active)
                )
            )
            business = result.scalar_one_or_none()

        if business is None:
            return None
        return BusinessInfo(
            id=business.uuid,
            name=business.name,
            timezone=business.timezone,
            holiday_country=business.holiday_country,
        )

    async def get_weekly_schedule(
        self, owner_type: OwnerType, owner_id: UUID
    ) -> Optional[WeeklySchedule]:
        async with self._session("weekly schedule") as session:
            internal_id = await self._owner_internal_id(session, owner_type, owner_id)
            if internal_id is None:
                return None
            result = await session.execute(
                select(WorkingHours).where(
                    and_(
                        WorkingHours.owner_type == owner_type.value,
                        WorkingHours.owner_id == internal_id,
                        WorkingHours.is_active,
                    )
                )
            )
            rows = result.scalars().all()

        if not rows:
            return None

        days = {}
        for row in rows:
            try:
                weekday = WeekDay[row.weekday.upper()]
            except KeyError:
                raise InvalidScheduleError(
                    f"Unknown weekday '{row.weekday}'", owner_id=owner_id
                )
            if weekday in days:
                raise InvalidScheduleError(
                    f"Duplicate working hours for {weekday.name}", owner_id=owner_id
                )
            try:
                days[weekday] = DayRule.open(
                    row.start_time,
                    row.end_time,
                    row.break_start_time,
                    row.break_end_time,
                )
            except ValidationError as e:
                raise InvalidScheduleError(
                    f"Invalid working hours for {weekday.name}: {e}",
                    owner_id=owner_id,
                ) from e

        return WeeklySchedule(days=days)

    async def get_exceptions(
        self, owner_type: OwnerType, owner_id: UUID, date_range: DateRange
    ) -> list[ScheduleException]:
        async with self._session("schedule exceptions") as session:
            internal_id = await self._owner_internal_id(session, owner_type, owner_id)
            if internal_id is None:
                return []
            result = await session.execute(
                select(ScheduleExceptionRow)
                .where(
                    and_(
                        ScheduleExceptionRow.owner_type == owner_type.value,
                        ScheduleExceptionRow.owner_id == internal_id,
                        ScheduleExceptionRow.date >= date_range.start,
                        ScheduleExceptionRow.date <= date_range.end,
                    )
                )
                .order_by(ScheduleExceptionRow.date)
            )
            rows = result.scalars().all()

        exceptions = []
        for row in rows:
            exception = parse_schedule_exception(
                {
                    "date": row.date,
                    "kind": row.kind,
                    "start_time": row.start_time,
                    "end_time": row.end_time,
                    "reason": row.reason,
                }
            )
            exceptions.append(exception)
        return exceptions

    async def get_service(self, service_id: UUID) -> Optional[ServiceInfo]:
        async with self._session("service") as session:
            result = await session.execute(
                select(Service, Business.uuid)
                .join(Business, Service.business_id == Business.id)
                .where(and_(Service.uuid == service_id, Service.is_active))
            )
            row = result.one_or_none()

        if row is None:
            return None
        service, business_uuid = row
        return ServiceInfo(
            id=service.uuid,
            business_id=business_uuid,
            name=service.name,
            duration_minutes=service.duration_minutes,
            buffer_before_minutes=service.buffer_before_minutes or 0,
            buffer_after_minutes=service.buffer_after_minutes or 0,
        )

    async def get_employee(self, employee_id: UUID) -> Optional[EmployeeInfo]:
        async with self._session("employee") as session:
            result = await session.execute(
                select(Staff, Business.uuid)
                .join(Business, Staff.business_id == Business.id)
                .where(Staff.uuid == employee_id)
            )
            row = result.one_or_none()
            if row is None:
                return None
            staff, business_uuid = row
            service_ids = await self._service_ids_by_staff(session, [staff.id])

        return self._to_employee(staff, business_uuid, service_ids.get(staff.id, set()))

    async def get_employees_for_service(
        self, business_id: UUID, service_id: UUID
    ) -> list[EmployeeInfo]:
        async with self._session("employees for service") as session:
            result = await session.execute(
                select(Staff)
                .join(Business, Staff.business_id == Business.id)
                .join(StaffService, StaffService.staff_id == Staff.id)
                .join(Service, StaffService.service_id == Service.id)
                .where(
                    and_(
                        Business.uuid == business_id,
                        Service.uuid == service_id,
                        StaffService.is_available,
                        Staff.is_active,
                        Staff.is_bookable,
                    )
                )
                .order_by(Staff.display_order, Staff.name)
            )
            staff_members = result.scalars().unique().all()
            service_ids = await self._service_ids_by_staff(
                session, [staff.id for staff in staff_members]
            )

        return [
            self._to_employee(staff, business_id, service_ids.get(staff.id, set()))
            for staff in staff_members
        ]

    async def get_appointments(
        self,
        employee_id: UUID,
        date_range: DateRange,
        exclude_statuses: AbstractSet[AppointmentStatus] = DEFAULT_EXCLUDED_STATUSES,
    ) -> list[BookedAppointment]:
        range_start = datetime.combine(date_range.start, time.min)
        range_end = datetime.combine(date_range.end + timedelta(days=1), time.min)
        excluded = [status.value for status in exclude_statuses]

        async with self._session("appointments") as session:
            query = (
                select(Appointment, Service)
                .join(Staff, Appointment.staff_id == Staff.id)
                .join(Service, Appointment.service_id == Service.id)
                .where(
                    and_(
                        Staff.uuid == employee_id,
                        Appointment.start_datetime < range_end,
                        Appointment.end_datetime > range_start,
                    )
                )
                .order_by(Appointment.start_datetime)
            )
            if excluded:
                query = query.where(Appointment.status.not_in(excluded))
            result = await session.execute(query)
            rows = result.all()

        appointments = []
        for appointment, service in rows:
            buffer_before = appointment.buffer_before_minutes
            if buffer_before is None:
                buffer_before = service.buffer_before_minutes or 0
            buffer_after = appointment.buffer_after_minutes
            if buffer_after is None:
                buffer_after = service.buffer_after_minutes or 0

            appointments.append(
                BookedAppointment(
                    employee_id=employee_id,
                    start_datetime=appointment.start_datetime,
                    end_datetime=appointment.end_datetime,
                    status=self._parse_status(appointment.status),
                    buffer_before_minutes=buffer_before,
                    buffer_after_minutes=buffer_after,
                )
            )
        return appointments

    async def _owner_internal_id(
        self, session: AsyncSession, owner_type: OwnerType, owner_id: UUID
    ) -> Optional[int]:
        model = Business if owner_type == OwnerType.BUSINESS else Staff
        result = await session.execute(select(model.id).where(model.uuid == owner_id))
        return result.scalar_one_or_none()

    async def _service_ids_by_staff(
        self, session: AsyncSession, staff_ids: list[int]
    ) -> dict[int, set[UUID]]:
        if not staff_ids:
            return {}
        result = await session.execute(
            select(StaffService.staff_id, Service.uuid)
            .join(Service, StaffService.service_id == Service.id)
            .where(
                and_(
                    StaffService.staff_id.in_(staff_ids),
                    StaffService.is_available,
                    Service.is_active,
                )
            )
        )
        service_ids: dict[int, set[UUID]] = {}
        for staff_id, service_uuid in result.all():
            service_ids.setdefault(staff_id, set()).add(service_uuid)
        return service_ids

    def _to_employee(
        self, staff: Staff, business_uuid: UUID, service_ids: set[UUID]
    ) -> EmployeeInfo:
        return EmployeeInfo(
            id=staff.uuid,
            business_id=business_uuid,
            name=staff.name,
            service_ids=service_ids,
            is_active=staff.is_active,
            is_bookable=staff.is_bookable,
        )

    def _parse_status(self, value: str) -> AppointmentStatus:
        try:
            return AppointmentStatus(value.lower())
        except ValueError:
            # Statuses outside the known set still hold the employee's time
            logger.warning("Unknown appointment status", status=value)
            return AppointmentStatus.CONFIRMED
