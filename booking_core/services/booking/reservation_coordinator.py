# booking_core/services/booking/reservation_coordinator.py
"""
Turns a candidate slot into a committed booking.

The capacity re-check and the insert run under one per-key lock
(business, service, date, time), so concurrent reservations for the same
key are serialised and max_concurrent can never be exceeded. Different
keys never contend.
"""
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional
import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_core.config.settings import get_settings
from booking_core.core.exceptions import BookingValidationError, SlotUnavailableError
from booking_core.models.booking import ACTIVE_STATUSES, Booking
from booking_core.services.availability.slot_generator import is_on_grid
from booking_core.services.booking.slot_lock import get_slot_lock
from booking_core.services.rules.rule_store import RuleStore
from booking_core.utils.time_utils import business_now, format_minutes, parse_hhmm, weekday_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerDetails:
    name: str
    email: str
    phone: str
    notes: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReservationCoordinator:

    def __init__(
            self,
            db: Session,
            notifier=None,
            slot_lock=None,
            rule_store: Optional[RuleStore] = None,
            clock: Callable[[], datetime] = _utcnow
    ):
        self.db = db
        self.notifier = notifier
        self.slot_lock = slot_lock or get_slot_lock()
        self.rule_store = rule_store or RuleStore(db)
        self.clock = clock
        self.settings = get_settings()

    def reserve(
            self,
            business_id,
            service_id,
            booking_date,
            booking_time: str,
            customer: CustomerDetails,
            booking_source: str = "api"
    ) -> Booking:
        """
        Commit a booking or raise exactly one of:
        NotFoundError, BookingValidationError, SlotUnavailableError.
        """
        business = self.rule_store.get_business(business_id)
        service = self.rule_store.get_service(business.id, service_id)

        slot_date = self._parse_date(booking_date)
        slot_time = self._parse_time(booking_time)
        self._validate_customer(customer)

        rule = self.rule_store.get_service_rules(service.id).get(weekday_name(slot_date))
        if rule is None:
            raise BookingValidationError(
                f"{service.name} is not available on {weekday_name(slot_date)}s"
            )
        if not is_on_grid(rule, service.duration, slot_time):
            raise BookingValidationError(
                f"{slot_time} is not a bookable start time for {service.name} on {slot_date.isoformat()}",
                details={"booking_date": slot_date.isoformat(), "booking_time": slot_time},
            )
        self._ensure_not_past(business.timezone, slot_date, slot_time)

        status = self.settings.BOOKING_DEFAULT_STATUS

        key = (str(business.id), str(service.id), slot_date.isoformat(), slot_time)
        max_concurrent = rule.max_concurrent
        business_uuid, service_uuid = business.id, service.id

        # The locked section starts on a fresh transaction so the count sees
        # everything committed before the lock was granted.
        self.db.rollback()

        with self.slot_lock.hold(key) as held:
            try:
                taken = self._count_active(business_uuid, service_uuid, slot_date, slot_time)

                if taken >= max_concurrent:
                    self.db.rollback()
                    logger.info(f"Slot {key} full ({taken}/{max_concurrent})")
                    raise self._full(slot_date, slot_time)

                booking = Booking(
                    business_id=business_uuid,
                    service_id=service_uuid,
                    customer_name=customer.name.strip(),
                    customer_email=customer.email.strip(),
                    customer_phone=customer.phone.strip(),
                    booking_date=slot_date,
                    booking_time=slot_time,
                    notes=customer.notes or None,
                    status=status,
                    booking_source=booking_source,
                    email_confirmed=False,
                    notification_attempts=0,
                )
                held.confirm()
                self.db.add(booking)
                self.db.commit()

                # A lock lost during a stalled commit can let a second writer in.
                # The later committer sees every earlier row and backs out.
                taken = self._count_active(business_uuid, service_uuid, slot_date, slot_time)
                if taken > max_concurrent:
                    self.db.delete(booking)
                    self.db.commit()
                    logger.warning(
                        f"Slot {key} over capacity after commit ({taken}/{max_concurrent}), "
                        f"withdrew booking {booking.id}"
                    )
                    raise self._full(slot_date, slot_time)
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception(f"Database error while reserving {key}")
                raise

        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} committed for {key} ({taken}/{max_concurrent})")

        if self.notifier is not None:
            self.notifier.notify(booking.id)

        return booking

    def _count_active(self, business_id, service_id, slot_date: date, slot_time: str) -> int:
        return self.db.query(func.count(Booking.id)).filter(
            Booking.business_id == business_id,
            Booking.service_id == service_id,
            Booking.booking_date == slot_date,
            Booking.booking_time == slot_time,
            Booking.status.in_(ACTIVE_STATUSES)
        ).scalar()

    @staticmethod
    def _full(slot_date: date, slot_time: str) -> SlotUnavailableError:
        return SlotUnavailableError(
            f"No capacity left at {slot_time} on {slot_date.isoformat()}",
            details={"booking_date": slot_date.isoformat(), "booking_time": slot_time},
        )

    @staticmethod
    def _parse_date(value) -> date:
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value))
        except ValueError:
            raise BookingValidationError(f"Invalid booking_date {value!r}, expected YYYY-MM-DD")

    @staticmethod
    def _parse_time(value: str) -> str:
        try:
            return format_minutes(parse_hhmm(value))
        except ValueError:
            raise BookingValidationError(f"Invalid booking_time {value!r}, expected HH:MM")

    @staticmethod
    def _validate_customer(customer: CustomerDetails):
        missing = [
            field for field in ("name", "email", "phone")
            if not (getattr(customer, field) or "").strip()
        ]
        if missing:
            raise BookingValidationError(
                f"Missing customer fields: {', '.join('customer_' + f for f in missing)}"
            )
        try:
            validate_email(customer.email.strip(), check_deliverability=False)
        except EmailNotValidError as e:
            raise BookingValidationError(f"Invalid customer_email: {e}")

    def _ensure_not_past(self, tz_name: Optional[str], slot_date: date, slot_time: str):
        local_now = business_now(tz_name, self.clock())
        if (slot_date, slot_time) < (local_now.date(), local_now.strftime("%H:%M")):
            raise BookingValidationError(
                f"Cannot book a slot in the past ({slot_date.isoformat()} {slot_time})"
            )
