# ============================================================================
# booking_core/api/v1/booking_tools.py
# Tool endpoints called by the voice agent. Every call resolves its business
# from the verified channel headers; the request body never names it.
# ============================================================================
from datetime import datetime, timedelta, timezone
from uuid import UUID
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from booking_core.api.dependencies import get_reservation_coordinator, resolve_tool_business
from booking_core.config.database import get_db
from booking_core.config.settings import get_settings
from booking_core.schemas.booking import (
    AvailabilityToolRequest,
    BookServiceToolRequest,
    CustomerBookingsToolRequest,
)
from booking_core.services.availability.availability_service import AvailabilityService
from booking_core.services.availability.slot_generator import group_by_date
from booking_core.services.booking.booking_query_service import BookingQueryService
from booking_core.services.booking.reservation_coordinator import CustomerDetails, ReservationCoordinator
from booking_core.services.business.business_service import BusinessService
from booking_core.services.rules.rule_store import RuleStore
from booking_core.utils.time_utils import business_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/booking-tools", tags=["booking-tools"])


@router.post("/get_business_info")
def get_business_info(
        business_id: UUID = Depends(resolve_tool_business),
        db: Session = Depends(get_db)
):
    return {"success": True, "business": BusinessService(db).get_business_info(business_id)}


@router.post("/list_business_services")
def list_business_services(
        business_id: UUID = Depends(resolve_tool_business),
        db: Session = Depends(get_db)
):
    services = BusinessService(db).list_services(business_id)
    return {"success": True, "services": services, "count": len(services)}


@router.post("/get_business_availability")
def get_business_availability(
        request: AvailabilityToolRequest,
        business_id: UUID = Depends(resolve_tool_business),
        db: Session = Depends(get_db)
):
    rule_store = RuleStore(db)
    business = rule_store.get_business(business_id)
    service = rule_store.get_service(business.id, request.service_id)

    # "today" is the business's calendar day, not the server's
    start_date = request.start_date or business_now(business.timezone, datetime.now(timezone.utc)).date()
    end_date = request.end_date or start_date + timedelta(days=get_settings().DEFAULT_AVAILABILITY_DAYS)

    slots = AvailabilityService(db, rule_store=rule_store).list_available_slots(
        business.id, service.id, start_date, end_date
    )
    if not request.include_unavailable:
        slots = [slot for slot in slots if slot.available]

    return {
        "success": True,
        "service_id": request.service_id,
        "service_name": service.name,
        "timezone": business.timezone or "UTC",
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "available_dates": group_by_date(slots),
    }


@router.post("/book_business_service")
def book_business_service(
        request: BookServiceToolRequest,
        business_id: UUID = Depends(resolve_tool_business),
        coordinator: ReservationCoordinator = Depends(get_reservation_coordinator)
):
    booking = coordinator.reserve(
        business_id=business_id,
        service_id=request.service_id,
        booking_date=request.booking_date,
        booking_time=request.booking_time,
        customer=CustomerDetails(
            name=request.customer_name,
            email=str(request.customer_email),
            phone=request.customer_phone,
            notes=request.notes,
        ),
        booking_source="voice",
    )
    logger.info(f"Voice booking {booking.id} created for business {business_id}")
    return {
        "success": True,
        "booking": booking.to_dict(),
        "message": f"Booked for {booking.booking_date.isoformat()} at {booking.booking_time}",
    }


@router.post("/get_customer_bookings")
def get_customer_bookings(
        request: CustomerBookingsToolRequest,
        business_id: UUID = Depends(resolve_tool_business),
        db: Session = Depends(get_db)
):
    bookings = BookingQueryService(db).get_customer_bookings(
        business_id,
        customer_email=request.customer_email,
        customer_phone=request.customer_phone,
        customer_name=request.customer_name,
        limit=request.limit,
    )
    return {"success": True, "bookings": bookings, "count": len(bookings)}
