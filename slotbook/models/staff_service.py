import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from slotbook.core.database import Base


class StaffService(Base):
    """Which services a staff member can perform."""

    __tablename__ = "staff_services"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)

    is_available = Column(
        Boolean, default=True, nullable=False
    )  # Can staff perform this service

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("staff_id", "service_id", name="uq_staff_service"),
    )

    # Relationships
    staff = relationship("Staff", back_populates="staff_services")
    service = relationship("Service", back_populates="staff_services")

    def __repr__(self):
        return (
            f"<StaffService(staff_id={self.staff_id}, service_id={self.service_id}, "
            f"available={self.is_available})>"
        )
