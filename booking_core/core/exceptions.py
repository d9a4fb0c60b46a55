# booking_core/core/exceptions.py
"""Error taxonomy shared by services, tasks and the HTTP layer"""
from typing import Optional


class BookingCoreError(Exception):
    """Base error; carries a stable kind for API clients"""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        error = {"kind": self.kind, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class BookingValidationError(BookingCoreError):
    """Malformed or off-grid input. Terminal, not retried."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(BookingCoreError):
    kind = "not_found"
    status_code = 404


class AuthFailure(BookingCoreError):
    """Missing or invalid identity binding"""

    kind = "auth_failure"
    status_code = 401


class SlotUnavailableError(BookingCoreError):
    """Capacity exhausted at commit time; re-fetch slots and pick another time"""

    kind = "slot_unavailable"
    status_code = 409


class UpstreamDependencyFailure(BookingCoreError):
    """Notification dispatch or delivery failed; the booking itself stands"""

    kind = "upstream_failure"
    status_code = 502


class RuleDataError(BookingCoreError):
    """Stored availability rule is malformed"""

    kind = "rule_data_error"
    status_code = 500


class ForbiddenError(BookingCoreError):
    """Credential is valid but lacks the required scope"""

    kind = "forbidden"
    status_code = 403
