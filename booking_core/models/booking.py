# booking_core/models/booking.py
from sqlalchemy import Column, String, Integer, Text, Date, DateTime, Boolean, ForeignKey, Index, Uuid
from sqlalchemy.sql import func
from datetime import datetime, timezone
from booking_core.models.base import Base
import uuid

# Statuses that hold capacity at a slot key
ACTIVE_STATUSES = ("pending", "confirmed")
BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed")


def _utcnow():
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id"), nullable=False)

    # Customer info
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(30), nullable=False)

    # Slot key
    booking_date = Column(Date, nullable=False)
    booking_time = Column(String(5), nullable=False)  # HH:MM format
    notes = Column(Text, nullable=True)

    # Status tracking
    status = Column(String(20), default="confirmed", nullable=False)  # pending, confirmed, cancelled, completed
    booking_source = Column(String(20), default="api")  # web, voice, api

    # Notifications
    email_confirmed = Column(Boolean, default=False, nullable=False)  # false -> true only
    notification_attempts = Column(Integer, default=0, nullable=False)
    last_notification_error = Column(Text, nullable=True)
    notification_claimed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_bookings_slot_key", "business_id", "service_id", "booking_date", "booking_time"),
        Index("ix_bookings_unconfirmed", "email_confirmed", "created_at"),
    )

    def __repr__(self):
        return f"<Booking(id={self.id}, date={self.booking_date}, time={self.booking_time})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "business_id": str(self.business_id),
            "service_id": str(self.service_id),
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "booking_date": self.booking_date.isoformat(),
            "booking_time": self.booking_time,
            "status": self.status,
            "email_confirmed": self.email_confirmed,
            "notes": self.notes,
            "booking_source": self.booking_source,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
