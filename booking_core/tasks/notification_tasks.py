# ===== booking_core/tasks/notification_tasks.py =====
import logging

from booking_core.config.celery_config import celery_app
from booking_core.config.database import SessionLocal
from booking_core.core.exceptions import UpstreamDependencyFailure
from booking_core.services.notification.booking_notifier import BookingNotifier
from booking_core.services.notification.retry_sweep import RetrySweep

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def send_booking_notification(self, booking_id: str):
    """
    Send the confirmation emails for a freshly committed booking

    Args:
        booking_id: Booking UUID as a string
    """
    db = SessionLocal()
    try:
        logger.info(f"Sending booking notification for {booking_id}")
        result = BookingNotifier(db).deliver(booking_id)
        return result.to_dict()

    except UpstreamDependencyFailure as exc:
        logger.error(f"Booking notification for {booking_id} failed: {exc}")

        # Retry with exponential backoff: 1min, 2min, 4min; the sweep takes over after that
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
    finally:
        db.close()


@celery_app.task
def retry_unconfirmed_booking_emails():
    """Periodic sweep over recent bookings still missing a confirmation email"""
    db = SessionLocal()
    try:
        results = RetrySweep(db, BookingNotifier(db)).run()
        return {"processed": len(results), "results": results}
    finally:
        db.close()
