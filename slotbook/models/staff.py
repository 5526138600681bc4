import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from slotbook.core.database import Base


class Staff(Base):
    """Bookable staff member of a business."""

    __tablename__ = "staff"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    name = Column(String, nullable=False)

    # Booking settings
    is_bookable = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Display settings
    display_order = Column(Integer, default=0, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    business = relationship("Business", back_populates="staff")
    staff_services = relationship(
        "StaffService", back_populates="staff", cascade="all, delete-orphan"
    )
    # working_hours and schedule_exceptions are polymorphic on owner_type/owner_id

    def __repr__(self):
        return (
            f"<Staff(id={self.id}, name='{self.name}', "
            f"bookable={self.is_bookable})>"
        )
