# ============================================================================
# FILE: booking_core/api/dependencies.py
# Caller identity and service providers for the HTTP layer
# ============================================================================
import hmac
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from booking_core.config.database import get_db
from booking_core.config.settings import get_settings
from booking_core.core.exceptions import AuthFailure, ForbiddenError
from booking_core.models.api_key import APIKey
from booking_core.services.api_key.api_key_service import APIKeyService
from booking_core.services.booking.reservation_coordinator import ReservationCoordinator
from booking_core.services.business.business_resolver import BusinessResolver, RequestContext
from booking_core.services.notification.booking_notifier import BookingNotifier
from booking_core.services.notification.notification_trigger import NotificationTrigger

# ============================================================================
# Security Schemes
# ============================================================================

api_key_security = HTTPBearer(
    scheme_name="API Key Authentication",
    description="Enter your API key in the format: bkc_live_xxxxx or bkc_test_xxxxx",
    auto_error=False
)

cron_security = HTTPBearer(scheme_name="Cron Secret", auto_error=False)


# ============================================================================
# API key channel
# ============================================================================

def require_api_key(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(api_key_security),
        db: Session = Depends(get_db)
) -> APIKey:
    """Resolve the bearer API key to its (active) business"""
    if not credentials:
        raise AuthFailure("Missing API key")
    return BusinessResolver(db).resolve_api_key(credentials.credentials)


def require_scope(required_scope: str):
    """Dependency factory that creates a scope-checking dependency."""

    def scope_checker(
            api_key: APIKey = Depends(require_api_key),
            db: Session = Depends(get_db)
    ):
        if not APIKeyService(db).check_scope(api_key, required_scope):
            raise ForbiddenError(f"Insufficient permissions. Required scope: {required_scope}")
        return None

    return scope_checker


# ============================================================================
# Voice tool channel
# ============================================================================

def resolve_tool_business(
        x_tool_secret: Optional[str] = Header(None),
        x_business_context: Optional[str] = Header(None),
        x_phone_number: Optional[str] = Header(None),
        x_assistant_id: Optional[str] = Header(None),
        authorization: Optional[str] = Header(None),
        db: Session = Depends(get_db)
) -> UUID:
    """Business id for a tool call, from the verified channel headers or an API key"""
    credential = None
    if authorization and authorization.lower().startswith("bearer "):
        credential = authorization[7:].strip()

    context = RequestContext(
        channel_secret=x_tool_secret,
        business_context=x_business_context,
        phone_number=x_phone_number,
        assistant_id=x_assistant_id,
        credential=credential,
    )
    return BusinessResolver(db).resolve(context)


# ============================================================================
# Cron
# ============================================================================

def require_cron_secret(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(cron_security)
):
    """Bearer CRON_SECRET; an unset secret locks the endpoint"""
    secret = get_settings().CRON_SECRET
    if not secret or not credentials:
        raise AuthFailure("Unauthorized")
    if not hmac.compare_digest(credentials.credentials.encode(), secret.encode()):
        raise AuthFailure("Unauthorized")
    return None


# ============================================================================
# Service providers (overridden in tests)
# ============================================================================

def get_notification_trigger(db: Session = Depends(get_db)) -> NotificationTrigger:
    return NotificationTrigger(db)


def get_reservation_coordinator(
        db: Session = Depends(get_db),
        trigger: NotificationTrigger = Depends(get_notification_trigger)
) -> ReservationCoordinator:
    return ReservationCoordinator(db, notifier=trigger)


def get_booking_notifier(db: Session = Depends(get_db)) -> BookingNotifier:
    return BookingNotifier(db)
