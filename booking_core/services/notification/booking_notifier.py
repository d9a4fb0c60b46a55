# booking_core/services/notification/booking_notifier.py
"""
Delivers booking confirmation emails and marks the booking email_confirmed.

Delivery is guarded by a short claim on the booking row
(notification_claimed_at) so the on-create task and the retry sweep never
send for the same booking at the same time. email_confirmed only moves
false -> true, through a conditional update.
"""
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from booking_core.config.settings import get_settings
from booking_core.core.exceptions import NotFoundError, UpstreamDependencyFailure
from booking_core.models.booking import Booking
from booking_core.models.business import Business
from booking_core.models.service import Service
from booking_core.services.email.email_service import EmailService

logger = logging.getLogger(__name__)

SKIPPED_ALREADY_CONFIRMED = "already_confirmed"
SKIPPED_CLAIMED = "claimed_by_another_sender"


@dataclass
class DeliveryResult:
    booking_id: str
    sent: bool
    owner_notified: bool = False
    skipped: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.sent or self.skipped == SKIPPED_ALREADY_CONFIRMED

    def to_dict(self) -> dict:
        return asdict(self)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingNotifier:

    def __init__(
            self,
            db: Session,
            email_sender=EmailService,
            clock: Callable[[], datetime] = _utcnow
    ):
        self.db = db
        self.email_sender = email_sender
        self.clock = clock
        self.claim_seconds = get_settings().NOTIFICATION_CLAIM_SECONDS

    def deliver(self, booking_id) -> DeliveryResult:
        try:
            booking_uuid = UUID(str(booking_id))
        except ValueError:
            raise NotFoundError(f"Booking not found: {booking_id}")

        booking = self.db.get(Booking, booking_uuid)
        if booking is None:
            raise NotFoundError(f"Booking not found: {booking_id}")

        if booking.email_confirmed:
            logger.debug(f"Booking {booking_uuid} already confirmed, nothing to send")
            return DeliveryResult(str(booking_uuid), sent=False, skipped=SKIPPED_ALREADY_CONFIRMED)

        if not self._claim(booking_uuid):
            logger.info(f"Booking {booking_uuid} is being notified by another sender")
            return DeliveryResult(str(booking_uuid), sent=False, skipped=SKIPPED_CLAIMED)

        booking = self.db.get(Booking, booking_uuid)
        service = self.db.get(Service, booking.service_id)
        business = self.db.get(Business, booking.business_id)

        try:
            self.email_sender.send_booking_confirmation(booking, service, business)
        except Exception as e:
            logger.error(f"Confirmation email for booking {booking_uuid} failed: {e}")
            self._record_failure(booking_uuid, str(e))
            raise UpstreamDependencyFailure(
                f"Could not send confirmation for booking {booking_uuid}: {e}"
            ) from e

        owner_notified = False
        if business.email:
            try:
                self.email_sender.send_owner_booking_notice(booking, service, business)
                owner_notified = True
            except Exception as e:
                # Owner notice is best effort; the customer already has theirs
                logger.warning(f"Owner notice for booking {booking_uuid} failed: {e}")

        self._mark_confirmed(booking_uuid)
        logger.info(f"Booking {booking_uuid} confirmation delivered")
        return DeliveryResult(str(booking_uuid), sent=True, owner_notified=owner_notified)

    def _claim(self, booking_uuid: UUID) -> bool:
        now = self.clock()
        stale_before = now - timedelta(seconds=self.claim_seconds)

        claimed = self.db.query(Booking).filter(
            Booking.id == booking_uuid,
            Booking.email_confirmed == False,
            or_(
                Booking.notification_claimed_at.is_(None),
                Booking.notification_claimed_at < stale_before
            )
        ).update({Booking.notification_claimed_at: now}, synchronize_session=False)
        self.db.commit()
        return claimed == 1

    def _mark_confirmed(self, booking_uuid: UUID):
        self.db.query(Booking).filter(
            Booking.id == booking_uuid,
            Booking.email_confirmed == False
        ).update({
            Booking.email_confirmed: True,
            Booking.notification_claimed_at: None,
            Booking.notification_attempts: Booking.notification_attempts + 1,
            Booking.last_notification_error: None,
        }, synchronize_session=False)
        self.db.commit()

    def _record_failure(self, booking_uuid: UUID, error: str):
        self.db.query(Booking).filter(Booking.id == booking_uuid).update({
            Booking.notification_claimed_at: None,
            Booking.notification_attempts: Booking.notification_attempts + 1,
            Booking.last_notification_error: error[:1000],
        }, synchronize_session=False)
        self.db.commit()
