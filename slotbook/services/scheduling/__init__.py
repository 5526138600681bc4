# Availability computation engine
from .aggregator import AvailabilityService, EmployeeAvailability, merge_employee_slots
from .holiday_calendar import HolidayCalendar
from .resolver import WorkingWindow, resolve_window
from .slots import generate_candidates
from .store import AvailabilityStore

__all__ = [
    "AvailabilityService",
    "AvailabilityStore",
    "EmployeeAvailability",
    "HolidayCalendar",
    "WorkingWindow",
    "generate_candidates",
    "merge_employee_slots",
    "resolve_window",
]
