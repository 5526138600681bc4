# Import all models to ensure they are registered with SQLAlchemy
from . import (
    appointment,
    business,
    schedule_exception,
    service,
    staff,
    staff_service,
    working_hours,
)

__all__ = [
    "appointment",
    "business",
    "schedule_exception",
    "service",
    "staff",
    "staff_service",
    "working_hours",
]
