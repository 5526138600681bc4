import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from slotbook.core.database import Base


class Service(Base):
    """Service model with duration and buffer management."""

    __tablename__ = "services"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    name = Column(String(255), nullable=False)

    # Service details
    duration_minutes = Column(Integer, nullable=False)

    # Buffer management
    buffer_before_minutes = Column(Integer, default=0, nullable=False)  # Setup/prep time
    buffer_after_minutes = Column(Integer, default=0, nullable=False)  # Cleanup time

    is_active = Column(Boolean, default=True, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_service_positive_duration"),
        CheckConstraint(
            "buffer_before_minutes >= 0 AND buffer_after_minutes >= 0",
            name="check_service_non_negative_buffers",
        ),
    )

    # Relationships
    business = relationship("Business", back_populates="services")
    staff_services = relationship("StaffService", back_populates="service")

    @property
    def total_duration_minutes(self):
        """Total time including buffers."""
        return (
            self.duration_minutes
            + self.buffer_before_minutes
            + self.buffer_after_minutes
        )

    def __repr__(self):
        return (
            f"<Service(id={self.id}, name='{self.name}', "
            f"duration={self.duration_minutes}min)>"
        )
