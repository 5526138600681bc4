import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from slotbook.core.database import Base


class Business(Base):
    """Business model with timezone and public-holiday calendar settings."""

    __tablename__ = "businesses"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)

    # Location & timezone
    timezone = Column(String(50), nullable=False, default="UTC")
    holiday_country = Column(String(10), nullable=True)  # ISO 3166 alpha-2

    is_active = Column(Boolean, default=True, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    services = relationship("Service", back_populates="business")
    staff = relationship("Staff", back_populates="business")

    def __repr__(self):
        return f"<Business(id={self.id}, name='{self.name}', tz={self.timezone})>"
