import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from slotbook.core.exceptions import InvalidExceptionError, InvalidScheduleError
from slotbook.schemas.scheduling import (
    DateRange,
    DayRule,
    ModifiedHoursException,
    ScheduleException,
    WeeklySchedule,
)
from slotbook.services.scheduling.clock import Interval, to_minutes

logger = logging.getLogger(__name__)

SOURCE_WEEKLY = "weekly"
SOURCE_EXCEPTION = "exception"


@dataclass(frozen=True)
class WorkingWindow:
    """Effective opening intervals of one owner on one date.

    An empty ``intervals`` tuple means the owner is closed.
    """

    intervals: tuple[Interval, ...] = ()
    source: str = SOURCE_WEEKLY
    exception: Optional[ScheduleException] = None

    @property
    def is_closed(self) -> bool:
        return not self.intervals

    def contains(self, interval: Interval) -> bool:
        return any(window.contains(interval) for window in self.intervals)


def exception_for_date(
    day: date, exceptions: Iterable[ScheduleException]
) -> Optional[ScheduleException]:
    """Return the single exception of one subject for ``day``, if any."""
    matches = [exception for exception in exceptions if exception.date == day]
    if len(matches) > 1:
        raise InvalidExceptionError(
            f"Found {len(matches)} exceptions for {day}; at most one is allowed",
            day=day,
        )
    return matches[0] if matches else None


def select_exception(
    day: date,
    business_exceptions: Iterable[ScheduleException] = (),
    employee_exceptions: Iterable[ScheduleException] = (),
) -> Optional[ScheduleException]:
    """Employee exceptions are applied after, and therefore win over, business ones."""
    employee_exception = exception_for_date(day, employee_exceptions)
    if employee_exception is not None:
        return employee_exception
    return exception_for_date(day, business_exceptions)


def day_rule_intervals(rule: DayRule, day: Optional[date] = None) -> tuple[Interval, ...]:
    """Split a weekly day rule into working intervals around its lunch break."""
    if not rule.is_open:
        return ()
    if rule.open_time is None or rule.close_time is None:
        raise InvalidScheduleError("Open day rule is missing opening times", day=day)

    opens, closes = to_minutes(rule.open_time), to_minutes(rule.close_time)
    if opens >= closes:
        raise InvalidScheduleError(
            f"Opening time {rule.open_time} is not before closing time {rule.close_time}",
            day=day,
        )

    if rule.lunch_break is None:
        return (Interval(opens, closes),)

    lunch_start = to_minutes(rule.lunch_break.start)
    lunch_end = to_minutes(rule.lunch_break.end)
    if not (opens <= lunch_start < lunch_end <= closes):
        raise InvalidScheduleError(
            f"Lunch break {rule.lunch_break.start}-{rule.lunch_break.end} lies "
            f"outside opening hours {rule.open_time}-{rule.close_time}",
            day=day,
        )

    pieces = (Interval(opens, lunch_start), Interval(lunch_end, closes))
    return tuple(piece for piece in pieces if piece.length > 0)


def modified_hours_interval(exception: ModifiedHoursException) -> Interval:
    start, end = to_minutes(exception.start_time), to_minutes(exception.end_time)
    if start >= end:
        raise InvalidScheduleError(
            f"Modified hours {exception.start_time}-{exception.end_time} "
            f"do not form a valid window",
            day=exception.date,
        )
    return Interval(start, end)


def validate_exceptions(
    exceptions: Iterable[ScheduleException], date_range: DateRange
) -> None:
    """Raise on duplicate dates or inverted modified hours within ``date_range``."""
    exceptions = list(exceptions)
    for day in date_range.days():
        exception = exception_for_date(day, exceptions)
        if isinstance(exception, ModifiedHoursException):
            modified_hours_interval(exception)


def resolve_window(
    schedule: WeeklySchedule,
    day: date,
    business_exceptions: Iterable[ScheduleException] = (),
    employee_exceptions: Iterable[ScheduleException] = (),
) -> WorkingWindow:
    """Resolve the effective working window for ``day``.

    Precedence, highest first:

    1. an ``unavailable`` or ``holiday`` exception closes the day;
    2. a ``modified_hours`` exception replaces the day with its own window,
       without the recurring lunch break;
    3. the weekly rule for the weekday, minus its lunch break.
    """
    exception = select_exception(day, business_exceptions, employee_exceptions)

    if exception is not None:
        if exception.closes_day:
            logger.debug(f"{day} closed by {exception.kind} exception")
            return WorkingWindow(source=SOURCE_EXCEPTION, exception=exception)

        interval = modified_hours_interval(exception)
        logger.debug(f"{day} uses modified hours {interval}")
        return WorkingWindow(
            intervals=(interval,), source=SOURCE_EXCEPTION, exception=exception
        )

    intervals = day_rule_intervals(schedule.for_date(day), day)
    if not intervals:
        logger.debug(f"{day} closed by weekly schedule")
    return WorkingWindow(intervals=intervals, source=SOURCE_WEEKLY)
