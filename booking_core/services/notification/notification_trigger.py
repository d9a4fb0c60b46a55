# booking_core/services/notification/notification_trigger.py
"""
Fire-and-forget hand-off from a committed reservation to the notification
worker. notify() never raises: a broker outage must not unwind a booking
that is already committed, the retry sweep picks it up later.
"""
from typing import Callable, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_core.models.booking import Booking

logger = logging.getLogger(__name__)


def enqueue_booking_notification(booking_id: str):
    from booking_core.tasks.notification_tasks import send_booking_notification

    # retry=False: fail fast instead of blocking the request on a dead broker
    return send_booking_notification.apply_async(args=[booking_id], retry=False)


class NotificationTrigger:

    def __init__(
            self,
            db: Optional[Session] = None,
            dispatch: Callable[[str], object] = enqueue_booking_notification
    ):
        self.db = db
        self.dispatch = dispatch

    def notify(self, booking_id) -> bool:
        booking_id = str(booking_id)
        try:
            self.dispatch(booking_id)
        except Exception as e:
            logger.error(f"Could not enqueue notification for booking {booking_id}: {e}")
            self._record_failure(booking_id, f"enqueue failed: {e}")
            return False

        logger.info(f"Notification queued for booking {booking_id}")
        return True

    def _record_failure(self, booking_id: str, error: str):
        if self.db is None:
            return
        try:
            self.db.query(Booking).filter(Booking.id == UUID(booking_id)).update(
                {Booking.last_notification_error: error[:1000]},
                synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Could not record notification error for booking {booking_id}: {e}")
