from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from slotbook.core.config import settings
from slotbook.core.database import get_session_factory
from slotbook.core.redis import redis_client
from slotbook.services.cache import CachedAvailabilityStore
from slotbook.services.repository import SqlAvailabilityStore
from slotbook.services.scheduling import AvailabilityService, AvailabilityStore


def get_availability_store(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> AvailabilityStore:
    """Storage for availability reads, fronted by Redis when configured."""
    store = SqlAvailabilityStore(session_factory)
    if redis_client.enabled:
        return CachedAvailabilityStore(
            store, redis_client, settings.SCHEDULE_CACHE_TTL_SECONDS
        )
    return store


def get_availability_service(
    store: AvailabilityStore = Depends(get_availability_store),
) -> AvailabilityService:
    return AvailabilityService(store, settings.SLOT_GRANULARITY_MINUTES)
