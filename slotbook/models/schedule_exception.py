import uuid

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.sql import func

from slotbook.core.database import Base


class ScheduleException(Base):
    """Single-date override of a business or staff schedule."""

    __tablename__ = "schedule_exceptions"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4, index=True)
    owner_type = Column(String(20), nullable=False)  # BUSINESS or STAFF
    owner_id = Column(Integer, nullable=False)

    date = Column(Date, nullable=False)
    kind = Column(String(20), nullable=False)  # unavailable, modified_hours, holiday

    # Only set for modified_hours
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    reason = Column(Text, nullable=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "owner_type", "owner_id", "date", name="uq_schedule_exception_owner_date"
        ),
        Index("ix_schedule_exceptions_owner", "owner_type", "owner_id"),
    )

    def __repr__(self):
        return (
            f"<ScheduleException(id={self.id}, "
            f"{self.owner_type}_id={self.owner_id}, {self.date}: {self.kind})>"
        )
