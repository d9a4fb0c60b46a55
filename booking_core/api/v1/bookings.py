# ============================================================================
# booking_core/api/v1/bookings.py
# API key authenticated endpoints - thin HTTP layer
# ============================================================================
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from booking_core.api.dependencies import get_reservation_coordinator, require_api_key, require_scope
from booking_core.config.database import get_db
from booking_core.models.api_key import APIKey
from booking_core.schemas.booking import BookingCreateRequest, SlotResponse
from booking_core.services.availability.availability_service import AvailabilityService
from booking_core.services.booking.booking_query_service import BookingQueryService
from booking_core.services.booking.reservation_coordinator import CustomerDetails, ReservationCoordinator
from booking_core.services.business.business_service import BusinessService

router = APIRouter(tags=["api-bookings"])


@router.get("/business")
def get_business(
        api_key: APIKey = Depends(require_api_key),
        _: None = Depends(require_scope("read:availability")),
        db: Session = Depends(get_db)
):
    """Business profile, active services count and weekly hours"""
    return BusinessService(db).get_business_info(api_key.business_id)


@router.get("/services")
def list_services(
        api_key: APIKey = Depends(require_api_key),
        _: None = Depends(require_scope("read:availability")),
        db: Session = Depends(get_db)
):
    return {"services": BusinessService(db).list_services(api_key.business_id)}


@router.get("/services/{service_id}/slots", response_model=List[SlotResponse])
def list_slots(
        service_id: str = Path(..., description="The service ID"),
        start_date: date = Query(..., description="First day, YYYY-MM-DD"),
        end_date: Optional[date] = Query(None, description="Last day, defaults to start_date + 7 days"),
        api_key: APIKey = Depends(require_api_key),
        _: None = Depends(require_scope("read:availability")),
        db: Session = Depends(get_db)
):
    """
    Candidate slots for a service. Capacity is a snapshot; the booking
    call re-checks it.
    """
    slots = AvailabilityService(db).list_available_slots(
        api_key.business_id, service_id, start_date, end_date
    )
    return [slot.to_dict() for slot in slots]


@router.post("/bookings", status_code=status.HTTP_201_CREATED)
def create_booking(
        request: BookingCreateRequest,
        api_key: APIKey = Depends(require_api_key),
        _: None = Depends(require_scope("write:bookings")),
        coordinator: ReservationCoordinator = Depends(get_reservation_coordinator)
):
    booking = coordinator.reserve(
        business_id=api_key.business_id,
        service_id=request.service_id,
        booking_date=request.booking_date,
        booking_time=request.booking_time,
        customer=CustomerDetails(
            name=request.customer_name,
            email=str(request.customer_email),
            phone=request.customer_phone,
            notes=request.notes,
        ),
        booking_source="api",
    )
    return booking.to_dict()


@router.get("/bookings/{booking_id}")
def get_booking(
        booking_id: str = Path(..., description="The booking ID"),
        api_key: APIKey = Depends(require_api_key),
        _: None = Depends(require_scope("read:bookings")),
        db: Session = Depends(get_db)
):
    return BookingQueryService(db).get_booking(api_key.business_id, booking_id).to_dict()
