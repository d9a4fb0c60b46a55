# booking_core/api/v1/cron.py
"""Scheduler entry point for the notification retry sweep"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from booking_core.api.dependencies import get_booking_notifier, require_cron_secret
from booking_core.config.database import get_db
from booking_core.schemas.booking import SweepResponse
from booking_core.services.notification.booking_notifier import BookingNotifier
from booking_core.services.notification.retry_sweep import RetrySweep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


@router.get("/retry-booking-emails", response_model=SweepResponse)
def retry_booking_emails(
        _: None = Depends(require_cron_secret),
        notifier: BookingNotifier = Depends(get_booking_notifier),
        db: Session = Depends(get_db)
):
    results = RetrySweep(db, notifier).run()
    return {"processed": len(results), "results": results}
