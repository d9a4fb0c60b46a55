# booking_core/services/api_key/api_key_service.py
import secrets
import hashlib
from typing import Optional, List, Tuple
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from sqlalchemy import select, and_
from uuid import UUID

from booking_core.models.api_key import APIKey


class APIKeyService:
    """Business API keys: the credential that binds a caller to one business"""

    VALID_SCOPES = [
        "read:availability",
        "read:bookings",
        "write:bookings",
        "*"  # Admin - all permissions
    ]

    def __init__(self, db: Session):
        self.db = db

    def generate_key(
            self,
            business_id: UUID,
            name: str,
            scopes: List[str],
            expires_at: Optional[datetime] = None,
            environment: str = "live"  # "live" or "test"
    ) -> Tuple[APIKey, str]:
        """
        Generate a new API key for a business.

        Returns:
            Tuple of (APIKey model, raw_key_string)
            Raw key is only returned ONCE - never retrievable again!
        """
        invalid_scopes = [s for s in scopes if s not in self.VALID_SCOPES]
        if invalid_scopes:
            raise ValueError(f"Invalid scopes: {invalid_scopes}")

        if not scopes:
            raise ValueError("At least one scope is required")

        random_part = secrets.token_urlsafe(24)
        raw_key = f"bkc_{environment}_{random_part}"

        api_key = APIKey(
            business_id=business_id,
            key_prefix=raw_key[:12],
            key_hash=self._hash_key(raw_key),
            name=name,
            scopes=scopes,
            expires_at=expires_at,
            is_active=True,
            usage_count=0
        )

        self.db.add(api_key)
        self.db.commit()
        self.db.refresh(api_key)

        return api_key, raw_key

    def validate_key(self, raw_key: str) -> Optional[APIKey]:
        """
        Validate an API key and return the APIKey model if valid.

        Checks:
        - Key exists
        - Key is active
        - Key not expired
        - Key not revoked

        Returns None if invalid.
        """
        if not raw_key:
            return None

        query = select(APIKey).where(
            and_(
                APIKey.key_hash == self._hash_key(raw_key),
                APIKey.is_active == True,
                APIKey.revoked_at.is_(None)
            )
        )
        api_key = self.db.execute(query).scalar_one_or_none()

        if not api_key:
            return None

        now = datetime.now(timezone.utc)
        if api_key.expires_at:
            expires_at = api_key.expires_at
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at < now:
                return None

        api_key.last_used_at = now
        api_key.usage_count = (api_key.usage_count or 0) + 1
        self.db.commit()

        return api_key

    def check_scope(self, api_key: APIKey, required_scope: str) -> bool:
        """Admin wildcard or exact scope match"""
        scopes = api_key.scopes or []
        if "*" in scopes:
            return True
        return required_scope in scopes

    def revoke_key(self, key_id: UUID, business_id: Optional[UUID] = None) -> APIKey:
        query = select(APIKey).where(APIKey.id == key_id)

        if business_id:
            query = query.where(APIKey.business_id == business_id)

        api_key = self.db.execute(query).scalar_one_or_none()

        if not api_key:
            raise ValueError("API key not found")

        api_key.is_active = False
        api_key.revoked_at = datetime.now(timezone.utc)

        self.db.commit()
        self.db.refresh(api_key)

        return api_key

    @staticmethod
    def _hash_key(raw_key: str) -> str:
        """Hash an API key using SHA-256."""
        return hashlib.sha256(raw_key.encode()).hexdigest()
