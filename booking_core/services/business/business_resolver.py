# booking_core/services/business/business_resolver.py
"""
Maps an inbound request's identity to exactly one business.

Two ways in:
  * trusted voice-tool channel: the caller proves itself with the shared
    tool secret and then names the business explicitly (context header) or
    through a binding we store (business phone number, assistant id);
  * API key credential: the key row is owned by one business.

Anything else is an AuthFailure. There is no "first business" fallback.
"""
import hmac
import json
from dataclasses import dataclass
from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session
import logging

from booking_core.config.settings import get_settings
from booking_core.core.exceptions import AuthFailure, BookingValidationError, NotFoundError
from booking_core.models.api_key import APIKey
from booking_core.models.business import Business
from booking_core.services.api_key.api_key_service import APIKeyService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    channel_secret: Optional[str] = None
    business_context: Optional[str] = None  # raw JSON, e.g. {"businessId": "..."}
    phone_number: Optional[str] = None
    assistant_id: Optional[str] = None
    credential: Optional[str] = None  # API key


class BusinessResolver:

    def __init__(self, db: Session, tool_secret: Optional[str] = None):
        self.db = db
        self.tool_secret = tool_secret if tool_secret is not None else get_settings().VOICE_TOOL_SECRET

    def resolve(self, context: RequestContext) -> UUID:
        if context.channel_secret:
            if not self._is_trusted(context.channel_secret):
                raise AuthFailure("Invalid tool channel secret")
            return self._resolve_trusted(context)

        if context.credential:
            return self.resolve_api_key(context.credential).business_id

        raise AuthFailure("No business context or credential supplied")

    def _is_trusted(self, channel_secret: str) -> bool:
        if not self.tool_secret:
            return False
        return hmac.compare_digest(channel_secret.encode(), self.tool_secret.encode())

    def _resolve_trusted(self, context: RequestContext) -> UUID:
        business_id = self._parse_context(context.business_context)
        if business_id:
            # Verified upstream by the tool channel, used as-is
            return business_id

        if context.phone_number:
            business = self.db.query(Business).filter(
                Business.phone_number == context.phone_number,
                Business.is_active == True
            ).first()
            if not business:
                raise NotFoundError(f"No business bound to phone number {context.phone_number}")
            logger.info(f"Resolved business {business.id} from phone number")
            return business.id

        if context.assistant_id:
            business = self.db.query(Business).filter(
                Business.voice_assistant_id == context.assistant_id,
                Business.is_active == True
            ).first()
            if not business:
                raise NotFoundError(f"No business bound to assistant {context.assistant_id}")
            logger.info(f"Resolved business {business.id} from assistant id")
            return business.id

        raise AuthFailure("Tool call carries no business context")

    @staticmethod
    def _parse_context(raw: Optional[str]) -> Optional[UUID]:
        if not raw:
            return None
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise BookingValidationError(f"Malformed business context header: {e}")

        value = payload.get("businessId") if isinstance(payload, dict) else None
        if not value:
            return None
        try:
            return UUID(str(value))
        except ValueError:
            raise BookingValidationError(f"Malformed business id in context: {value}")

    def resolve_api_key(self, credential: str) -> APIKey:
        """Valid key whose owning business is active"""
        api_key = APIKeyService(self.db).validate_key(credential)
        if not api_key:
            raise AuthFailure("Invalid or expired API key")

        business = self.db.query(Business).filter(
            Business.id == api_key.business_id,
            Business.is_active == True
        ).first()
        if not business:
            raise NotFoundError("Business for this API key is not active")

        return api_key
