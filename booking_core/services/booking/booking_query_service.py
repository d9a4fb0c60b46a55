# ============================================================================
# booking_core/services/booking/booking_query_service.py
# ============================================================================
"""Read-side booking lookups, always scoped to one business"""
from typing import Dict, List, Optional
from uuid import UUID
from sqlalchemy.orm import Session

from booking_core.core.exceptions import BookingValidationError, NotFoundError
from booking_core.models.booking import Booking
from booking_core.models.service import Service


class BookingQueryService:

    def __init__(self, db: Session):
        self.db = db

    def get_booking(self, business_id, booking_id) -> Booking:
        try:
            booking_uuid = UUID(str(booking_id))
        except ValueError:
            raise NotFoundError(f"Booking not found: {booking_id}")

        booking = self.db.query(Booking).filter(
            Booking.id == booking_uuid,
            Booking.business_id == business_id
        ).first()

        if not booking:
            raise NotFoundError(f"Booking not found: {booking_id}")
        return booking

    def get_customer_bookings(
            self,
            business_id,
            customer_email: Optional[str] = None,
            customer_phone: Optional[str] = None,
            customer_name: Optional[str] = None,
            limit: int = 10
    ) -> List[Dict]:
        """Newest first; at least one customer filter is required"""
        if not (customer_email or customer_phone or customer_name):
            raise BookingValidationError(
                "Provide at least one of customer_email, customer_phone or customer_name"
            )

        query = self.db.query(Booking, Service).join(
            Service, Service.id == Booking.service_id
        ).filter(Booking.business_id == business_id)

        if customer_email:
            query = query.filter(Booking.customer_email.ilike(customer_email))
        if customer_phone:
            query = query.filter(Booking.customer_phone.ilike(f"%{customer_phone}%"))
        if customer_name:
            query = query.filter(Booking.customer_name.ilike(f"%{customer_name}%"))

        rows = query.order_by(Booking.created_at.desc()).limit(limit).all()

        results = []
        for booking, service in rows:
            data = booking.to_dict()
            data["service"] = {
                "id": str(service.id),
                "name": service.name,
                "price": float(service.price) if service.price is not None else None,
                "duration": service.duration,
                "category": service.category,
            }
            results.append(data)
        return results
