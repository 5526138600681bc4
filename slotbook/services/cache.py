from typing import AbstractSet, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from slotbook.core.redis import RedisClient
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
from slotbook.services.scheduling.store import (
    DEFAULT_EXCLUDED_STATUSES,
    AvailabilityStore,
)

logger = structlog.get_logger(__name__)

KEY_PREFIX = "slotbook"


def service_key(service_id: UUID) -> str:
    return f"{KEY_PREFIX}:service:{service_id}"


def schedule_key(owner_type: OwnerType, owner_id: UUID) -> str:
    return f"{KEY_PREFIX}:schedule:{owner_type.value}:{owner_id}"


class CachedAvailabilityStore:
    """Read-through Redis cache in front of another availability store.

    Only slow-changing data is cached: service definitions and weekly
    schedules. Exceptions and appointments always go to the wrapped store.
    Redis failures are logged by the client and fall through to the store.
    """

    def __init__(
        self, store: AvailabilityStore, redis_client: RedisClient, ttl_seconds: int
    ):
        self.store = store
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds

    async def get_service(self, service_id: UUID) -> Optional[ServiceInfo]:
        key = service_key(service_id)
        cached = await self.redis.get(key)
        if cached is not None:
            try:
                return ServiceInfo.model_validate(cached)
            except ValidationError:
                logger.warning("Discarding malformed cache entry", key=key)

        service = await self.store.get_service(service_id)
        if service is not None:
            await self.redis.set(
                key, service.model_dump(mode="json"), expire=self.ttl_seconds
            )
        return service

    async def get_weekly_schedule(
        self, owner_type: OwnerType, owner_id: UUID
    ) -> Optional[WeeklySchedule]:
        key = schedule_key(owner_type, owner_id)
        cached = await self.redis.get(key)
        if cached is not None:
            try:
                return WeeklySchedule.model_validate(cached)
            except ValidationError:
                logger.warning("Discarding malformed cache entry", key=key)

        schedule = await self.store.get_weekly_schedule(owner_type, owner_id)
        if schedule is not None:
            await self.redis.set(
                key, schedule.model_dump(mode="json"), expire=self.ttl_seconds
            )
        return schedule

    async def get_business(self, business_id: UUID) -> Optional[BusinessInfo]:
        return await self.store.get_business(business_id)

    async def get_exceptions(
        self, owner_type: OwnerType, owner_id: UUID, date_range: DateRange
    ) -> list[ScheduleException]:
        return await self.store.get_exceptions(owner_type, owner_id, date_range)

    async def get_employee(self, employee_id: UUID) -> Optional[EmployeeInfo]:
        return await self.store.get_employee(employee_id)

    async def get_employees_for_service(
        self, business_id: UUID, service_id: UUID
    ) -> list[EmployeeInfo]:
        return await self.store.get_employees_for_service(business_id, service_id)

    async def get_appointments(
        self,
        employee_id: UUID,
        date_range: DateRange,
        exclude_statuses: AbstractSet[AppointmentStatus] = DEFAULT_EXCLUDED_STATUSES,
    ) -> list[BookedAppointment]:
        return await self.store.get_appointments(
            employee_id, date_range, exclude_statuses
        )
