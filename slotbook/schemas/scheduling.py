from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Annotated, Any, Iterator, List, Literal, Optional, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from slotbook.core.exceptions import InvalidExceptionError


class WeekDay(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def for_date(cls, day: date) -> "WeekDay":
        return list(cls)[day.weekday()]


class OwnerType(str, Enum):
    BUSINESS = "BUSINESS"
    STAFF = "STAFF"


class ExceptionKind(str, Enum):
    UNAVAILABLE = "unavailable"
    MODIFIED_HOURS = "modified_hours"
    HOLIDAY = "holiday"


class AppointmentStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class ConflictType(str, Enum):
    EXISTING_APPOINTMENT = "existing_appointment"
    TIME_OFF = "time_off"
    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    STAFF_UNAVAILABLE = "staff_unavailable"


# Recurring schedule
class LunchBreak(BaseModel):
    start: time
    end: time

    model_config = {"frozen": True}


class DayRule(BaseModel):
    """Opening rule for one weekday."""

    is_open: bool = False
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    lunch_break: Optional[LunchBreak] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_hours(self):
        if not self.is_open:
            return self
        if self.open_time is None or self.close_time is None:
            raise ValueError("open_time and close_time are required on open days")
        if self.open_time >= self.close_time:
            raise ValueError("open_time must be before close_time")
        if self.lunch_break is not None:
            lunch = self.lunch_break
            if not (self.open_time <= lunch.start < lunch.end <= self.close_time):
                raise ValueError("lunch break must lie within opening hours")
        return self

    @classmethod
    def open(
        cls,
        open_time: time,
        close_time: time,
        lunch_start: Optional[time] = None,
        lunch_end: Optional[time] = None,
    ) -> "DayRule":
        lunch_break = None
        if lunch_start is not None and lunch_end is not None:
            lunch_break = LunchBreak(start=lunch_start, end=lunch_end)
        return cls(
            is_open=True,
            open_time=open_time,
            close_time=close_time,
            lunch_break=lunch_break,
        )


class WeeklySchedule(BaseModel):
    """Recurring opening hours keyed by weekday; missing days are closed."""

    days: dict[WeekDay, DayRule] = Field(default_factory=dict)

    @model_validator(mode="after")
    def fill_missing_days(self):
        for weekday in WeekDay:
            self.days.setdefault(weekday, DayRule())
        return self

    def for_date(self, day: date) -> DayRule:
        return self.days[WeekDay.for_date(day)]

    @property
    def open_days(self) -> List[WeekDay]:
        return [weekday for weekday in WeekDay if self.days[weekday].is_open]


# Date exceptions
class _ScheduleExceptionBase(BaseModel):
    date: date
    reason: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def closes_day(self) -> bool:
        return False


class UnavailableException(_ScheduleExceptionBase):
    kind: Literal["unavailable"] = "unavailable"

    @property
    def closes_day(self) -> bool:
        return True


class HolidayException(_ScheduleExceptionBase):
    kind: Literal["holiday"] = "holiday"

    @property
    def closes_day(self) -> bool:
        return True


class ModifiedHoursException(_ScheduleExceptionBase):
    kind: Literal["modified_hours"] = "modified_hours"
    start_time: time
    end_time: time


ScheduleException = Annotated[
    Union[UnavailableException, HolidayException, ModifiedHoursException],
    Field(discriminator="kind"),
]

_schedule_exception_adapter = TypeAdapter(ScheduleException)


def parse_schedule_exception(data: dict[str, Any]) -> ScheduleException:
    """Build a typed exception from a loose record.

    Time fields are dropped for closing kinds and required for
    ``modified_hours``.
    """
    data = dict(data)
    kind = data.get("kind")
    if isinstance(kind, Enum):
        kind = data["kind"] = kind.value

    if kind == ExceptionKind.MODIFIED_HOURS.value:
        if data.get("start_time") is None or data.get("end_time") is None:
            raise InvalidExceptionError(
                "Modified hours exception requires start_time and end_time",
                day=data.get("date"),
            )
    else:
        data.pop("start_time", None)
        data.pop("end_time", None)

    try:
        return _schedule_exception_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidExceptionError(
            f"Invalid schedule exception: {e}", day=data.get("date")
        ) from e


# Collaborator records
class BusinessInfo(BaseModel):
    id: UUID
    name: str
    timezone: str = "UTC"
    holiday_country: Optional[str] = None


class ServiceInfo(BaseModel):
    id: UUID
    business_id: UUID
    name: str
    duration_minutes: int = Field(..., gt=0)
    buffer_before_minutes: int = Field(0, ge=0)
    buffer_after_minutes: int = Field(0, ge=0)

    @property
    def total_duration_minutes(self) -> int:
        """Total time including buffers."""
        return (
            self.buffer_before_minutes
            + self.duration_minutes
            + self.buffer_after_minutes
        )


class EmployeeInfo(BaseModel):
    id: UUID
    business_id: Optional[UUID] = None
    name: str
    service_ids: set[UUID] = Field(default_factory=set)
    working_hours: Optional[WeeklySchedule] = None
    is_active: bool = True
    is_bookable: bool = True

    def can_perform(self, service_id: UUID) -> bool:
        return service_id in self.service_ids

    def is_bookable_for(self, service_id: UUID) -> bool:
        return self.is_active and self.is_bookable and self.can_perform(service_id)


class BookedAppointment(BaseModel):
    employee_id: UUID
    start_datetime: datetime
    end_datetime: datetime
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    buffer_before_minutes: int = Field(0, ge=0)
    buffer_after_minutes: int = Field(0, ge=0)

    @model_validator(mode="after")
    def validate_times(self):
        if self.end_datetime <= self.start_datetime:
            raise ValueError("end_datetime must be after start_datetime")
        return self

    @property
    def blocks_time(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED


class DateRange(BaseModel):
    start: date
    end: date

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_order(self):
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self

    @classmethod
    def single(cls, day: date) -> "DateRange":
        return cls(start=day, end=day)

    def widen(self, days: int) -> "DateRange":
        return DateRange(
            start=self.start - timedelta(days=days),
            end=self.end + timedelta(days=days),
        )

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end


# Requests and responses
class SlotQuery(BaseModel):
    business_id: UUID
    service_id: UUID
    date: date
    employee_id: Optional[UUID] = None
    include_unavailable: bool = False


class AvailableEmployee(BaseModel):
    id: UUID
    name: str


class TimeSlot(BaseModel):
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    available: bool
    employee_id: Optional[UUID] = None
    employee_name: Optional[str] = None
    available_employee_count: Optional[int] = None
    available_employees: Optional[List[AvailableEmployee]] = None


class DayAvailability(BaseModel):
    date: date
    has_availability: bool
    available_slot_count: int = 0


class SlotCheck(BaseModel):
    available: bool
    employee_id: UUID
    service_id: UUID
    start_datetime: datetime
    end_datetime: datetime
    conflicts: List[ConflictType] = Field(default_factory=list)


class OpeningWindow(BaseModel):
    start: time
    end: time


class BusinessDay(BaseModel):
    business_id: UUID
    date: date
    weekday: WeekDay
    is_open: bool
    source: str
    reason: Optional[str] = None
    windows: List[OpeningWindow] = Field(default_factory=list)

    @field_validator("windows")
    @classmethod
    def sort_windows(cls, v):
        return sorted(v, key=lambda w: w.start)
