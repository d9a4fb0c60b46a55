# booking_core/schemas/__init__.py
from .booking import (
    BookingCreateRequest,
    BookServiceToolRequest,
    AvailabilityToolRequest,
    CustomerBookingsToolRequest,
    SlotResponse,
    SweepResult,
    SweepResponse
)
