from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from slotbook.schemas.scheduling import BookedAppointment, ServiceInfo
from slotbook.services.scheduling.clock import Interval, minutes_since_midnight


def requested_interval(start: int, service: ServiceInfo) -> Interval:
    """Span a booking at ``start`` occupies, buffers included."""
    return Interval(
        start - service.buffer_before_minutes,
        start + service.duration_minutes + service.buffer_after_minutes,
    )


def occupied_interval(appointment: BookedAppointment, day: date) -> Interval:
    """Span an existing appointment occupies, padded by its own buffers."""
    start = minutes_since_midnight(day, appointment.start_datetime)
    end = minutes_since_midnight(day, appointment.end_datetime, round_up=True)
    return Interval(
        start - appointment.buffer_before_minutes,
        end + appointment.buffer_after_minutes,
    )


def blocking_intervals(
    appointments: Iterable[BookedAppointment],
    day: date,
    employee_id: Optional[UUID] = None,
) -> list[Interval]:
    blocked = [
        occupied_interval(appointment, day)
        for appointment in appointments
        if appointment.blocks_time
        and (employee_id is None or appointment.employee_id == employee_id)
    ]
    return sorted(blocked)


def filter_availability(
    candidates: Iterable[int],
    appointments: Iterable[BookedAppointment],
    service: ServiceInfo,
    day: date,
    employee_id: Optional[UUID] = None,
) -> list[tuple[int, bool]]:
    """Mark each candidate start as available or blocked by an appointment."""
    blocked = blocking_intervals(appointments, day, employee_id)

    result = []
    for candidate in candidates:
        requested = requested_interval(candidate, service)
        available = not any(requested.overlaps(interval) for interval in blocked)
        result.append((candidate, available))
    return result


def find_conflicting_appointments(
    start: int,
    appointments: Iterable[BookedAppointment],
    service: ServiceInfo,
    day: date,
    employee_id: Optional[UUID] = None,
) -> list[BookedAppointment]:
    requested = requested_interval(start, service)
    return [
        appointment
        for appointment in appointments
        if appointment.blocks_time
        and (employee_id is None or appointment.employee_id == employee_id)
        and requested.overlaps(occupied_interval(appointment, day))
    ]
