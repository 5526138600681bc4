from typing import AbstractSet, Optional, Protocol
from uuid import UUID

from slotbook.schemas.scheduling import (
    AppointmentStatus,
    BookedAppointment,
    BusinessInfo,
    DateRange,
    EmployeeInfo,
    OwnerType,
    ScheduleException,
    ServiceInfo,
    WeeklySchedule,
)

DEFAULT_EXCLUDED_STATUSES = frozenset({AppointmentStatus.CANCELLED})


class AvailabilityStore(Protocol):
    """Read-side collaborator the availability engine consumes.

    Implementations raise ``UpstreamFetchError`` for storage failures and
    ``InvalidScheduleError`` / ``InvalidExceptionError`` for malformed data.
    """

    async def get_business(self, business_id: UUID) -> Optional[BusinessInfo]: ...

    async def get_weekly_schedule(
        self, owner_type: OwnerType, owner_id: UUID
    ) -> Optional[WeeklySchedule]: ...

    async def get_exceptions(
        self, owner_type: OwnerType, owner_id: UUID, date_range: DateRange
    ) -> list[ScheduleException]: ...

    async def get_service(self, service_id: UUID) -> Optional[ServiceInfo]: ...

    async def get_employee(self, employee_id: UUID) -> Optional[EmployeeInfo]: ...

    async def get_employees_for_service(
        self, business_id: UUID, service_id: UUID
    ) -> list[EmployeeInfo]: ...

    async def get_appointments(
        self,
        employee_id: UUID,
        date_range: DateRange,
        exclude_statuses: AbstractSet[AppointmentStatus] = DEFAULT_EXCLUDED_STATUSES,
    ) -> list[BookedAppointment]: ...
