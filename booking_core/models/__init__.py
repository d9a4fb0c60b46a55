# booking_core/models/__init__.py
from .base import Base
from .business import Business, BusinessHours
from .service import Service, ServiceAvailability
from .booking import Booking, ACTIVE_STATUSES, BOOKING_STATUSES
from .api_key import APIKey

__all__ = [
    "Base",
    "Business",
    "BusinessHours",
    "Service",
    "ServiceAvailability",
    "Booking",
    "ACTIVE_STATUSES",
    "BOOKING_STATUSES",
    "APIKey",
]
