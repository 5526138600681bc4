import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from slotbook.core.database import Base
from slotbook.schemas.scheduling import AppointmentStatus


class Appointment(Base):
    """Booked appointment as seen by availability computation.

    Start and end are naive wall-clock times in the business timezone.
    """

    __tablename__ = "appointments"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)

    # Scheduling details
    start_datetime = Column(DateTime, nullable=False, index=True)
    end_datetime = Column(DateTime, nullable=False)

    # Buffers captured at booking time; NULL falls back to the service buffers
    buffer_before_minutes = Column(Integer, nullable=True)
    buffer_after_minutes = Column(Integer, nullable=True)

    status = Column(
        String(20),
        nullable=False,
        default=AppointmentStatus.CONFIRMED.value,
        index=True,
    )

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "end_datetime > start_datetime", name="check_end_after_start"
        ),
        Index("ix_appointments_staff_start", "staff_id", "start_datetime"),
    )

    # Relationships
    service = relationship("Service")

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, staff_id={self.staff_id}, "
            f"{self.start_datetime}-{self.end_datetime}, status={self.status})>"
        )
