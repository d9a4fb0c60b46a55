# booking_core/models/service.py
"""
Service Model - bookable services and their weekly availability windows
"""
from sqlalchemy import (
    CheckConstraint, Column, String, Numeric, Integer, ForeignKey, Boolean, DateTime, Text, UniqueConstraint, Uuid
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from booking_core.models.base import Base


class Service(Base):
    """
    A service one business offers. Duration is the default slot width.
    """
    __tablename__ = "services"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Core service details
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)

    # Pricing (nullable - some services may not have fixed pricing)
    price = Column(Numeric(10, 2), nullable=True)

    # Duration in minutes
    duration = Column(Integer, nullable=False)

    is_active = Column(Boolean, default=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("duration > 0", name="ck_services_duration_positive"),
    )

    # Relationships
    business = relationship("Business", back_populates="services")
    availability = relationship(
        "ServiceAvailability",
        back_populates="service",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, business_id={self.business_id})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "business_id": str(self.business_id),
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": float(self.price) if self.price is not None else None,
            "duration": self.duration,
            "is_active": self.is_active,
        }


class ServiceAvailability(Base):
    """Per-weekday generation window and concurrency ceiling for one service"""
    __tablename__ = "service_availability"

    id = Column(Integer, primary_key=True)
    service_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    day_of_week = Column(String(9), nullable=False)  # monday..sunday
    start_time = Column(String(5), nullable=False)  # HH:MM format
    end_time = Column(String(5), nullable=False)  # HH:MM format
    break_between = Column(Integer, default=0, nullable=False)  # minutes
    max_concurrent = Column(Integer, default=1, nullable=False)
    slot_duration = Column(Integer, nullable=True)  # overrides Service.duration

    service = relationship("Service", back_populates="availability")

    __table_args__ = (
        UniqueConstraint("service_id", "day_of_week", name="uq_service_availability_day"),
        CheckConstraint("break_between >= 0", name="ck_service_availability_break"),
        CheckConstraint("max_concurrent >= 1", name="ck_service_availability_capacity"),
    )

    def __repr__(self):
        return f"<ServiceAvailability(service_id={self.service_id}, day={self.day_of_week})>"
