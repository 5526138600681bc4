from datetime import date
from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for availability engine errors."""


class ScheduleDataError(SchedulingError):
    """Stored schedule data is structurally invalid."""

    def __init__(
        self,
        message: str,
        owner_id: Any = None,
        day: Optional[date] = None,
    ):
        self.owner_id = owner_id
        self.day = day
        super().__init__(message)


class InvalidExceptionError(ScheduleDataError):
    """A date exception is malformed (e.g. modified hours without times)."""


class InvalidScheduleError(ScheduleDataError):
    """A day rule or exception window violates ordering invariants."""


class NotFoundError(SchedulingError):
    entity = "Entity"

    def __init__(self, entity_id: Any):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found: {entity_id}")


class BusinessNotFoundError(NotFoundError):
    entity = "Business"


class ServiceNotFoundError(NotFoundError):
    entity = "Service"


class EmployeeNotFoundError(NotFoundError):
    entity = "Employee"


class UpstreamFetchError(SchedulingError):
    """A storage collaborator failed; never retried by the engine."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to fetch {operation}{detail}")
