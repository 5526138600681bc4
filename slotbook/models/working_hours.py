import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Time,
    Uuid,
)
from sqlalchemy.sql import func

from slotbook.core.database import Base


class WorkingHours(Base):
    """Working hours model for businesses and staff with break support.

    One row per owner and weekday. A weekday without an active row is closed.
    """

    __tablename__ = "working_hours"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4, index=True)
    owner_type = Column(String(20), nullable=False)  # BUSINESS or STAFF
    owner_id = Column(Integer, nullable=False)

    # Schedule details
    weekday = Column(String(20), nullable=False)  # MONDAY..SUNDAY
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Break configuration (optional)
    break_start_time = Column(Time, nullable=True)
    break_end_time = Column(Time, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_working_hours_owner", "owner_type", "owner_id"),
        Index("ix_working_hours_weekday", "weekday"),
    )

    def __repr__(self):
        break_info = ""
        if self.break_start_time and self.break_end_time:
            break_info = f", break={self.break_start_time}-{self.break_end_time}"
        return (
            f"<WorkingHours(id={self.id}, "
            f"{self.owner_type}_id={self.owner_id}, "
            f"{self.weekday}: {self.start_time}-{self.end_time}"
            f"{break_info})>"
        )
