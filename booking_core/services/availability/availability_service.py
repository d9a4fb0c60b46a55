# ===== booking_core/services/availability/availability_service.py =====
from typing import List, Optional
from datetime import date, timedelta
from sqlalchemy.orm import Session
import logging

from booking_core.config.settings import get_settings
from booking_core.core.exceptions import BookingValidationError
from booking_core.models.booking import Booking, ACTIVE_STATUSES
from booking_core.services.availability.slot_generator import generate_slots
from booking_core.services.rules.records import Slot
from booking_core.services.rules.rule_store import RuleStore

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Candidate slots for one service over a date range"""

    def __init__(self, db: Session, rule_store: Optional[RuleStore] = None):
        self.db = db
        self.rule_store = rule_store or RuleStore(db)
        self.settings = get_settings()

    def resolve_range(self, start_date: date, end_date: Optional[date] = None):
        """Apply the default horizon and reject inverted or oversized ranges"""
        if end_date is None:
            end_date = start_date + timedelta(days=self.settings.DEFAULT_AVAILABILITY_DAYS)

        if end_date < start_date:
            raise BookingValidationError("end_date must not be before start_date")

        span = (end_date - start_date).days + 1
        if span > self.settings.MAX_AVAILABILITY_RANGE_DAYS:
            raise BookingValidationError(
                f"Date range too large: {span} days (max {self.settings.MAX_AVAILABILITY_RANGE_DAYS})"
            )
        return start_date, end_date

    def list_available_slots(
            self,
            business_id,
            service_id,
            start_date: date,
            end_date: Optional[date] = None
    ) -> List[Slot]:
        """
        Slots from the weekly rules with capacity taken from current bookings.

        The booking snapshot is read without locking; the reservation path
        re-checks capacity authoritatively.
        """
        start_date, end_date = self.resolve_range(start_date, end_date)

        service = self.rule_store.get_service(business_id, service_id)
        rules = self.rule_store.get_service_rules(service.id)

        if not rules:
            logger.info(f"No availability rules for service {service.id}")
            return []

        existing_bookings = self.db.query(Booking).filter(
            Booking.service_id == service.id,
            Booking.booking_date >= start_date,
            Booking.booking_date <= end_date,
            Booking.status.in_(ACTIVE_STATUSES)
        ).all()

        slots = list(generate_slots(
            service_duration=service.duration,
            rules=rules,
            start_date=start_date,
            end_date=end_date,
            existing_bookings=existing_bookings,
            service_id=service.id,
        ))

        logger.info(
            f"Generated {len(slots)} slots for service {service.id} "
            f"between {start_date} and {end_date}"
        )
        return slots
