"""Test the Redis read-through cache in front of the availability store."""

from datetime import time
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from slotbook.schemas.scheduling import DateRange, OwnerType, ServiceInfo
from slotbook.services.cache import CachedAvailabilityStore, schedule_key, service_key
from tests.fixtures.scheduling_fixtures import MONDAY, weekly_schedule


@pytest.fixture
def redis_mock():
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def service():
    return ServiceInfo(
        id=uuid4(), business_id=uuid4(), name="Haircut", duration_minutes=30
    )


@pytest.fixture
def backing_store(service):
    store = MagicMock()
    store.get_service = AsyncMock(return_value=service)
    store.get_weekly_schedule = AsyncMock(return_value=weekly_schedule())
    store.get_exceptions = AsyncMock(return_value=[])
    store.get_appointments = AsyncMock(return_value=[])
    return store


class TestCachedAvailabilityStore:
    @pytest.mark.asyncio
    async def test_service_miss_reads_through_and_populates(
        self, backing_store, redis_mock, service
    ):
        cached_store = CachedAvailabilityStore(backing_store, redis_mock, ttl_seconds=60)

        result = await cached_store.get_service(service.id)

        assert result == service
        backing_store.get_service.assert_awaited_once_with(service.id)
        redis_mock.set.assert_awaited_once_with(
            service_key(service.id), service.model_dump(mode="json"), expire=60
        )

    @pytest.mark.asyncio
    async def test_service_hit_skips_the_store(self, backing_store, redis_mock, service):
        redis_mock.get.return_value = service.model_dump(mode="json")
        cached_store = CachedAvailabilityStore(backing_store, redis_mock, ttl_seconds=60)

        result = await cached_store.get_service(service.id)

        assert result == service
        backing_store.get_service.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_entry_falls_back_to_store(
        self, backing_store, redis_mock, service
    ):
        redis_mock.get.return_value = {"unexpected": "payload"}
        cached_store = CachedAvailabilityStore(backing_store, redis_mock, ttl_seconds=60)

        result = await cached_store.get_service(service.id)

        assert result == service
        backing_store.get_service.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_schedule_round_trips_through_cache(self, backing_store, redis_mock):
        owner_id = uuid4()
        schedule = weekly_schedule()
        redis_mock.get.return_value = schedule.model_dump(mode="json")
        cached_store = CachedAvailabilityStore(backing_store, redis_mock, ttl_seconds=60)

        result = await cached_store.get_weekly_schedule(OwnerType.BUSINESS, owner_id)

        assert result == schedule
        assert result.for_date(MONDAY).lunch_break.start == time(12, 0)
        redis_mock.get.assert_awaited_once_with(
            schedule_key(OwnerType.BUSINESS, owner_id)
        )
        backing_store.get_weekly_schedule.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_schedule_is_not_cached(self, backing_store, redis_mock):
        backing_store.get_weekly_schedule.return_value = None
        cached_store = CachedAvailabilityStore(backing_store, redis_mock, ttl_seconds=60)

        result = await cached_store.get_weekly_schedule(OwnerType.STAFF, uuid4())

        assert result is None
        redis_mock.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_appointments_and_exceptions_are_never_cached(
        self, backing_store, redis_mock
    ):
        cached_store = CachedAvailabilityStore(backing_store, redis_mock, ttl_seconds=60)
        employee_id = uuid4()
        date_range = DateRange.single(MONDAY)

        await cached_store.get_appointments(employee_id, date_range)
        await cached_store.get_exceptions(OwnerType.STAFF, employee_id, date_range)

        redis_mock.get.assert_not_awaited()
        backing_store.get_appointments.assert_awaited_once()
        backing_store.get_exceptions.assert_awaited_once_with(
            OwnerType.STAFF, employee_id, date_range
        )

