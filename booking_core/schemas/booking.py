"""
Pydantic schemas for booking requests and responses
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


# ============================================================================
# Request Schemas
# ============================================================================

class BookingCreateRequest(BaseModel):
    """Booking request from the web UI / API key channel"""
    service_id: str
    booking_date: str = Field(..., pattern=DATE_PATTERN, description="YYYY-MM-DD")
    booking_time: str = Field(..., pattern=HHMM_PATTERN, description="HH:MM, 24h")
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: EmailStr
    customer_phone: str = Field(..., min_length=3, max_length=30)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("customer_name", "customer_phone")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("booking_date")
    @classmethod
    def validate_calendar_date(cls, v: str) -> str:
        date.fromisoformat(v)
        return v


class BookServiceToolRequest(BookingCreateRequest):
    """book_business_service tool arguments (same fields as the API request)"""


class AvailabilityToolRequest(BaseModel):
    """get_business_availability tool arguments"""
    service_id: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    include_unavailable: bool = False


class CustomerBookingsToolRequest(BaseModel):
    """get_customer_bookings tool arguments; one filter is required"""
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_name: Optional[str] = None
    limit: int = Field(10, ge=1, le=50)

    @model_validator(mode="after")
    def require_filter(self):
        if not (self.customer_email or self.customer_phone or self.customer_name):
            raise ValueError("Provide at least one of customer_email, customer_phone or customer_name")
        return self


# ============================================================================
# Response Schemas
# ============================================================================

class SlotResponse(BaseModel):
    date: str  # YYYY-MM-DD
    time: str
    available: bool
    remaining_capacity: int


class SweepResult(BaseModel):
    booking_id: str
    success: bool
    error: Optional[str] = None


class SweepResponse(BaseModel):
    processed: int
    results: List[SweepResult]
