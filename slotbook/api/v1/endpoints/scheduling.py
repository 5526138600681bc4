from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from slotbook.api.deps.scheduling import get_availability_service
from slotbook.core.exceptions import (
    NotFoundError,
    ScheduleDataError,
    SchedulingError,
    UpstreamFetchError,
)
from slotbook.schemas.scheduling import (
    BusinessDay,
    DateRange,
    DayAvailability,
    SlotCheck,
    SlotQuery,
    TimeSlot,
)
from slotbook.services.scheduling import AvailabilityService

logger = structlog.get_logger(__name__)

router = APIRouter()


def _to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, ScheduleDataError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, UpstreamFetchError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/slots")
async def get_available_slots(
    business_id: UUID = Query(..., description="Business UUID"),
    service_id: UUID = Query(..., description="Service UUID"),
    date: date = Query(..., description="Date to compute slots for"),
    employee_id: Optional[UUID] = Query(
        None, description="Restrict to one employee; omit for any employee"
    ),
    include_unavailable: bool = Query(
        False, description="Include blocked slots in response"
    ),
    availability: AvailabilityService = Depends(get_availability_service),
) -> Dict[str, List[TimeSlot]]:
    """
    Get bookable time slots for a service on a date.

    Without ``employee_id`` the slots of every capable employee are merged and
    each slot lists who is free at that time.
    """
    try:
        query = SlotQuery(
            business_id=business_id,
            service_id=service_id,
            date=date,
            employee_id=employee_id,
            include_unavailable=include_unavailable,
        )
        slots = await availability.get_available_slots(query)
        return {"slots": slots}

    except (SchedulingError, ValueError) as e:
        logger.warning("Slot lookup failed", error=str(e))
        raise _to_http_error(e)


@router.get("/dates")
async def get_available_dates(
    business_id: UUID = Query(..., description="Business UUID"),
    service_id: UUID = Query(..., description="Service UUID"),
    start_date: date = Query(..., description="First date of the range"),
    end_date: date = Query(..., description="Last date of the range, inclusive"),
    employee_id: Optional[UUID] = Query(None, description="Optional employee UUID"),
    availability: AvailabilityService = Depends(get_availability_service),
) -> Dict[str, List[DayAvailability]]:
    """Get which dates in a range have at least one bookable slot."""
    try:
        date_range = DateRange(start=start_date, end=end_date)
        days = await availability.get_available_dates(
            business_id, service_id, date_range, employee_id
        )
        return {"days": days}

    except (SchedulingError, ValueError) as e:
        logger.warning("Date availability lookup failed", error=str(e))
        raise _to_http_error(e)


@router.get("/slots/check")
async def check_slot(
    business_id: UUID = Query(..., description="Business UUID"),
    service_id: UUID = Query(..., description="Service UUID"),
    employee_id: UUID = Query(..., description="Employee UUID"),
    start_datetime: datetime = Query(
        ..., description="Requested start, local to the business"
    ),
    availability: AvailabilityService = Depends(get_availability_service),
) -> SlotCheck:
    """
    Check whether an exact start time can be booked with an employee.

    Reports every conflict found:
    - Time off or closure on that date
    - Outside working hours
    - Existing appointment (including buffers)
    - Employee does not offer the service
    """
    try:
        return await availability.check_slot(
            business_id, service_id, employee_id, start_datetime
        )

    except (SchedulingError, ValueError) as e:
        logger.warning("Slot check failed", error=str(e))
        raise _to_http_error(e)


@router.get("/business/hours")
async def get_business_hours(
    business_id: UUID = Query(..., description="Business UUID"),
    date: date = Query(..., description="Date to check business hours for"),
    availability: AvailabilityService = Depends(get_availability_service),
) -> BusinessDay:
    """Get business opening hours for a specific date, exceptions applied."""
    try:
        return await availability.get_business_day(business_id, date)

    except (SchedulingError, ValueError) as e:
        logger.warning("Business hours lookup failed", error=str(e))
        raise _to_http_error(e)
