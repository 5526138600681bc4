import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID

import structlog

from slotbook.core.config import settings
from slotbook.core.exceptions import (
    BusinessNotFoundError,
    EmployeeNotFoundError,
    ScheduleDataError,
    ServiceNotFoundError,
)
from slotbook.schemas.scheduling import (
    AvailableEmployee,
    BookedAppointment,
    BusinessDay,
    BusinessInfo,
    ConflictType,
    DateRange,
    DayAvailability,
    EmployeeInfo,
    OpeningWindow,
    OwnerType,
    ScheduleException,
    ServiceInfo,
    SlotCheck,
    SlotQuery,
    TimeSlot,
    WeekDay,
    WeeklySchedule,
)
from slotbook.services.scheduling.clock import (
    Interval,
    format_minutes,
    minutes_since_midnight,
    minutes_to_time,
)
from slotbook.services.scheduling.conflicts import (
    filter_availability,
    find_conflicting_appointments,
)
from slotbook.services.scheduling.holiday_calendar import (
    HolidayCalendar,
    merge_business_exceptions,
)
from slotbook.services.scheduling.resolver import (
    SOURCE_EXCEPTION,
    resolve_window,
    validate_exceptions,
)
from slotbook.services.scheduling.slots import generate_candidates
from slotbook.services.scheduling.store import AvailabilityStore

logger = structlog.get_logger(__name__)

MAX_DATE_RANGE_DAYS = 93


@dataclass
class BusinessCalendar:
    """Business-level schedule data shared read-only by every employee task."""

    business: BusinessInfo
    schedule: WeeklySchedule
    exceptions: list[ScheduleException] = field(default_factory=list)


@dataclass
class EmployeeSchedule:
    employee: EmployeeInfo
    schedule: WeeklySchedule
    exceptions: list[ScheduleException]
    appointments: list[BookedAppointment]


@dataclass
class EmployeeAvailability:
    """Result of one employee task: per-day candidate flags or the data error."""

    employee: EmployeeInfo
    days: dict[date, list[tuple[int, bool]]] = field(default_factory=dict)
    error: Optional[ScheduleDataError] = None

    def slots_for(self, day: date) -> list[tuple[int, bool]]:
        return self.days.get(day, [])


def merge_employee_slots(
    results: Iterable[EmployeeAvailability],
    day: date,
    include_unavailable: bool = False,
) -> list[TimeSlot]:
    """Union per-employee slots by start time.

    A time is available when any employee is free at it. Employees whose task
    failed are skipped.
    """
    free_by_minute: dict[int, list[EmployeeInfo]] = {}
    for result in results:
        if result.error is not None:
            continue
        for minute, available in result.slots_for(day):
            free = free_by_minute.setdefault(minute, [])
            if available:
                free.append(result.employee)

    slots = []
    for minute in sorted(free_by_minute):
        free = sorted(free_by_minute[minute], key=lambda e: (e.name, str(e.id)))
        if not free and not include_unavailable:
            continue
        slots.append(
            TimeSlot(
                time=format_minutes(minute),
                available=bool(free),
                available_employee_count=len(free),
                available_employees=[
                    AvailableEmployee(id=employee.id, name=employee.name)
                    for employee in free
                ],
            )
        )
    return slots


class AvailabilityService:
    """Computes bookable time slots for a service across capable staff."""

    def __init__(
        self, store: AvailabilityStore, granularity_minutes: Optional[int] = None
    ):
        self.store = store
        if granularity_minutes is None:
            granularity_minutes = settings.SLOT_GRANULARITY_MINUTES
        self.granularity_minutes = granularity_minutes

    async def get_available_slots(self, query: SlotQuery) -> list[TimeSlot]:
        """
        Get bookable slots for a service on one date.

        With ``query.employee_id`` only that employee is considered and schedule
        data errors are raised. Without it, every capable employee is evaluated
        concurrently and the results are merged; employees with invalid
        schedule data are left out.

        Raises:
            BusinessNotFoundError, ServiceNotFoundError, EmployeeNotFoundError
            InvalidScheduleError, InvalidExceptionError (single-employee mode)
            UpstreamFetchError
        """
        log = logger.bind(
            business_id=str(query.business_id),
            service_id=str(query.service_id),
            date=query.date.isoformat(),
            employee_id=str(query.employee_id) if query.employee_id else None,
        )
        log.info("Computing available slots")

        business = await self._get_business(query.business_id)
        service = await self._get_service(business, query.service_id)
        date_range = DateRange.single(query.date)
        calendar = await self._get_business_calendar(business, date_range)

        if query.employee_id is not None:
            employee = await self._get_employee(business, query.employee_id)
            availability = await self._employee_availability(
                employee, service, calendar, date_range
            )
            if availability.error is not None:
                raise availability.error
            slots = self._employee_time_slots(
                availability, query.date, query.include_unavailable
            )
        else:
            results = await self._open_mode_availability(
                business, service, calendar, date_range
            )
            slots = merge_employee_slots(
                results, query.date, query.include_unavailable
            )

        log.info(
            "Available slots computed",
            slot_count=len(slots),
            available_count=sum(1 for slot in slots if slot.available),
        )
        return slots

    async def get_available_dates(
        self,
        business_id: UUID,
        service_id: UUID,
        date_range: DateRange,
        employee_id: Optional[UUID] = None,
    ) -> list[DayAvailability]:
        """Get, for every day in ``date_range``, whether any slot is bookable."""
        if len(date_range) > MAX_DATE_RANGE_DAYS:
            raise ValueError(
                f"Date range spans {len(date_range)} days; "
                f"at most {MAX_DATE_RANGE_DAYS} are allowed"
            )

        logger.info(
            "Getting available days",
            business_id=str(business_id),
            service_id=str(service_id),
            start_date=date_range.start.isoformat(),
            end_date=date_range.end.isoformat(),
        )

        business = await self._get_business(business_id)
        service = await self._get_service(business, service_id)
        calendar = await self._get_business_calendar(business, date_range)

        if employee_id is not None:
            employee = await self._get_employee(business, employee_id)
            availability = await self._employee_availability(
                employee, service, calendar, date_range
            )
            if availability.error is not None:
                raise availability.error
            results = [availability]
        else:
            results = await self._open_mode_availability(
                business, service, calendar, date_range
            )

        days = []
        for day in date_range.days():
            slots = merge_employee_slots(results, day)
            days.append(
                DayAvailability(
                    date=day,
                    has_availability=bool(slots),
                    available_slot_count=len(slots),
                )
            )

        logger.info(
            "Available days computed",
            available_days=sum(1 for day in days if day.has_availability),
            total_days=len(days),
        )
        return days

    async def check_slot(
        self,
        business_id: UUID,
        service_id: UUID,
        employee_id: UUID,
        start_datetime: datetime,
    ) -> SlotCheck:
        """Validate one exact start time for an employee, off-grid starts included."""
        business = await self._get_business(business_id)
        service = await self._get_service(business, service_id)
        employee = await self._get_employee(business, employee_id)

        day = start_datetime.date()
        start = minutes_since_midnight(day, start_datetime)
        conflicts = []

        if not employee.is_bookable_for(service.id):
            conflicts.append(ConflictType.STAFF_UNAVAILABLE)
        else:
            date_range = DateRange.single(day)
            calendar = await self._get_business_calendar(business, date_range)
            inputs = await self._load_employee_schedule(employee, calendar, date_range)
            window = resolve_window(
                inputs.schedule, day, calendar.exceptions, inputs.exceptions
            )

            if window.is_closed and window.source == SOURCE_EXCEPTION:
                conflicts.append(ConflictType.TIME_OFF)
            elif not window.contains(
                Interval(start, start + service.duration_minutes)
            ):
                conflicts.append(ConflictType.OUTSIDE_WORKING_HOURS)

            if find_conflicting_appointments(
                start, inputs.appointments, service, day, employee.id
            ):
                conflicts.append(ConflictType.EXISTING_APPOINTMENT)

        logger.info(
            "Slot checked",
            employee_id=str(employee.id),
            start_datetime=start_datetime.isoformat(),
            conflicts=[conflict.value for conflict in conflicts],
        )
        return SlotCheck(
            available=not conflicts,
            employee_id=employee.id,
            service_id=service.id,
            start_datetime=start_datetime,
            end_datetime=start_datetime + timedelta(minutes=service.duration_minutes),
            conflicts=conflicts,
        )

    async def get_business_day(self, business_id: UUID, day: date) -> BusinessDay:
        """Get the resolved business opening hours for a specific date."""
        business = await self._get_business(business_id)
        calendar = await self._get_business_calendar(business, DateRange.single(day))
        window = resolve_window(calendar.schedule, day, calendar.exceptions)

        return BusinessDay(
            business_id=business.id,
            date=day,
            weekday=WeekDay.for_date(day),
            is_open=not window.is_closed,
            source=window.source,
            reason=window.exception.reason if window.exception else None,
            windows=[
                OpeningWindow(
                    start=minutes_to_time(interval.start),
                    end=minutes_to_time(interval.end),
                )
                for interval in window.intervals
            ],
        )

    async def _open_mode_availability(
        self,
        business: BusinessInfo,
        service: ServiceInfo,
        calendar: BusinessCalendar,
        date_range: DateRange,
    ) -> list[EmployeeAvailability]:
        employees = await self.store.get_employees_for_service(business.id, service.id)
        employees = [e for e in employees if e.is_bookable_for(service.id)]
        if not employees:
            logger.info(
                "No employees can perform service", service_id=str(service.id)
            )
            return []

        tasks = [
            asyncio.ensure_future(
                self._employee_availability(employee, service, calendar, date_range)
            )
            for employee in employees
        ]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        excluded = [result for result in results if result.error is not None]
        if excluded:
            logger.warning(
                "Employees excluded from availability",
                employee_ids=[str(result.employee.id) for result in excluded],
                errors=[str(result.error) for result in excluded],
            )
        return [result for result in results if result.error is None]

    async def _employee_availability(
        self,
        employee: EmployeeInfo,
        service: ServiceInfo,
        calendar: BusinessCalendar,
        date_range: DateRange,
    ) -> EmployeeAvailability:
        if not employee.is_bookable_for(service.id):
            logger.info(
                "Employee cannot be booked for service",
                employee_id=str(employee.id),
                service_id=str(service.id),
            )
            return EmployeeAvailability(employee=employee)

        try:
            inputs = await self._load_employee_schedule(employee, calendar, date_range)
            days = {
                day: self._compute_day(inputs, service, calendar, day)
                for day in date_range.days()
            }
        except ScheduleDataError as e:
            logger.warning(
                "Invalid schedule data for employee",
                employee_id=str(employee.id),
                error=str(e),
            )
            return EmployeeAvailability(employee=employee, error=e)

        return EmployeeAvailability(employee=employee, days=days)

    async def _load_employee_schedule(
        self,
        employee: EmployeeInfo,
        calendar: BusinessCalendar,
        date_range: DateRange,
    ) -> EmployeeSchedule:
        schedule = employee.working_hours
        if schedule is None:
            schedule = await self.store.get_weekly_schedule(
                OwnerType.STAFF, employee.id
            )
        if schedule is None:
            schedule = calendar.schedule

        exceptions = await self.store.get_exceptions(
            OwnerType.STAFF, employee.id, date_range
        )
        # Buffers of appointments on neighbouring days can reach into the range
        appointments = await self.store.get_appointments(
            employee.id, date_range.widen(1)
        )
        return EmployeeSchedule(
            employee=employee,
            schedule=schedule,
            exceptions=exceptions,
            appointments=appointments,
        )

    def _compute_day(
        self,
        inputs: EmployeeSchedule,
        service: ServiceInfo,
        calendar: BusinessCalendar,
        day: date,
    ) -> list[tuple[int, bool]]:
        window = resolve_window(
            inputs.schedule, day, calendar.exceptions, inputs.exceptions
        )
        if window.is_closed:
            return []

        candidates = generate_candidates(
            window, service.duration_minutes, self.granularity_minutes
        )
        return filter_availability(
            candidates,
            inputs.appointments,
            service,
            day,
            employee_id=inputs.employee.id,
        )

    def _employee_time_slots(
        self,
        availability: EmployeeAvailability,
        day: date,
        include_unavailable: bool,
    ) -> list[TimeSlot]:
        employee = availability.employee
        return [
            TimeSlot(
                time=format_minutes(minute),
                available=available,
                employee_id=employee.id,
                employee_name=employee.name,
                available_employee_count=1 if available else 0,
            )
            for minute, available in sorted(availability.slots_for(day))
            if available or include_unavailable
        ]

    async def _get_business_calendar(
        self, business: BusinessInfo, date_range: DateRange
    ) -> BusinessCalendar:
        schedule = await self.store.get_weekly_schedule(
            OwnerType.BUSINESS, business.id
        )
        if schedule is None:
            logger.warning(
                "No business hours found; business is closed every day",
                business_id=str(business.id),
            )
            schedule = WeeklySchedule()

        exceptions = await self.store.get_exceptions(
            OwnerType.BUSINESS, business.id, date_range
        )

        country = business.holiday_country or settings.DEFAULT_HOLIDAY_COUNTRY
        if country:
            public_holidays = HolidayCalendar(country).exceptions_between(date_range)
            exceptions = merge_business_exceptions(exceptions, public_holidays)

        validate_exceptions(exceptions, date_range)

        return BusinessCalendar(
            business=business, schedule=schedule, exceptions=exceptions
        )

    async def _get_business(self, business_id: UUID) -> BusinessInfo:
        business = await self.store.get_business(business_id)
        if business is None:
            logger.warning("Business not found", business_id=str(business_id))
            raise BusinessNotFoundError(business_id)
        return business

    async def _get_service(
        self, business: BusinessInfo, service_id: UUID
    ) -> ServiceInfo:
        service = await self.store.get_service(service_id)
        if service is None or service.business_id != business.id:
            logger.warning(
                "Service not found",
                service_id=str(service_id),
                business_id=str(business.id),
            )
            raise ServiceNotFoundError(service_id)
        return service

    async def _get_employee(
        self, business: BusinessInfo, employee_id: UUID
    ) -> EmployeeInfo:
        employee = await self.store.get_employee(employee_id)
        if employee is None or (
            employee.business_id is not None and employee.business_id != business.id
        ):
            logger.warning(
                "Employee not found",
                employee_id=str(employee_id),
                business_id=str(business.id),
            )
            raise EmployeeNotFoundError(employee_id)
        return employee
