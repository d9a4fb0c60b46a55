# booking_core/services/notification/retry_sweep.py
"""Bounded retry pass over bookings whose confirmation email never went out"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_core.config.settings import get_settings
from booking_core.core.exceptions import BookingCoreError
from booking_core.models.booking import Booking

logger = logging.getLogger(__name__)


class RetrySweep:

    def __init__(self, db: Session, notifier):
        self.db = db
        self.notifier = notifier
        self.settings = get_settings()

    def find_unconfirmed(self, now: datetime) -> List:
        """Newest first, within the sweep window, cancelled bookings excluded"""
        since = now - timedelta(days=self.settings.SWEEP_WINDOW_DAYS)

        rows = self.db.query(Booking.id).filter(
            Booking.email_confirmed == False,
            Booking.status != "cancelled",
            Booking.created_at >= since
        ).order_by(Booking.created_at.desc()).limit(self.settings.SWEEP_BATCH_SIZE).all()

        return [row[0] for row in rows]

    def run(self, now: Optional[datetime] = None) -> List[Dict]:
        now = now or datetime.now(timezone.utc)
        booking_ids = self.find_unconfirmed(now)
        logger.info(f"Retry sweep: {len(booking_ids)} unconfirmed bookings")

        results = []
        for booking_id in booking_ids:
            try:
                outcome = self.notifier.deliver(booking_id)
                results.append({
                    "booking_id": str(booking_id),
                    "success": outcome.confirmed,
                    "error": None if outcome.confirmed else outcome.skipped,
                })
            except BookingCoreError as e:
                results.append({"booking_id": str(booking_id), "success": False, "error": e.message})
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Retry sweep: database error on booking {booking_id}: {e}")
                results.append({"booking_id": str(booking_id), "success": False, "error": str(e)})

        succeeded = sum(1 for r in results if r["success"])
        logger.info(f"Retry sweep done: {succeeded}/{len(results)} confirmed")
        return results
