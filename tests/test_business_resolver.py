"""Tests for BusinessResolver: every request maps to exactly one business or fails."""
import json
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from booking_core.core.exceptions import AuthFailure, BookingValidationError, NotFoundError
from booking_core.services.api_key.api_key_service import APIKeyService
from booking_core.services.business.business_resolver import BusinessResolver, RequestContext

SECRET = "tool-secret"


@pytest.fixture
def resolver(db):
    return BusinessResolver(db, tool_secret=SECRET)


class TestTrustedChannel:

    def test_explicit_business_context(self, resolver, business):
        context = RequestContext(channel_secret=SECRET,
                                 business_context=json.dumps({"businessId": str(business.id)}))
        assert resolver.resolve(context) == business.id

    def test_phone_number_binding(self, resolver, business):
        context = RequestContext(channel_secret=SECRET, phone_number=business.phone_number)
        assert resolver.resolve(context) == business.id

    def test_assistant_binding(self, resolver, business):
        context = RequestContext(channel_secret=SECRET, assistant_id="asst_fade_street")
        assert resolver.resolve(context) == business.id

    def test_explicit_id_is_taken_as_given(self, resolver):
        """The trusted channel vouches for the id; existence is checked by the operation."""
        business_id = uuid.uuid4()
        context = RequestContext(channel_secret=SECRET,
                                 business_context=json.dumps({"businessId": str(business_id)}))
        assert resolver.resolve(context) == business_id

    def test_unknown_binding_is_not_found(self, resolver, business):
        with pytest.raises(NotFoundError):
            resolver.resolve(RequestContext(channel_secret=SECRET, phone_number="+10000000000"))

    def test_no_context_never_falls_back(self, resolver, business, other_business):
        with pytest.raises(AuthFailure):
            resolver.resolve(RequestContext(channel_secret=SECRET))

    def test_wrong_secret_is_auth_failure(self, resolver, business):
        context = RequestContext(channel_secret="guess",
                                 business_context=json.dumps({"businessId": str(business.id)}))
        with pytest.raises(AuthFailure):
            resolver.resolve(context)

    def test_empty_configured_secret_disables_channel(self, db, business):
        context = RequestContext(channel_secret="anything", phone_number=business.phone_number)
        with pytest.raises(AuthFailure):
            BusinessResolver(db, tool_secret="").resolve(context)

    def test_malformed_context_header(self, resolver):
        with pytest.raises(BookingValidationError):
            resolver.resolve(RequestContext(channel_secret=SECRET, business_context="{not json"))
        with pytest.raises(BookingValidationError):
            resolver.resolve(RequestContext(channel_secret=SECRET,
                                            business_context=json.dumps({"businessId": "abc"})))


class TestApiKeyCredential:

    def test_key_resolves_to_owner(self, resolver, business, api_key):
        assert resolver.resolve(RequestContext(credential=api_key)) == business.id

    def test_unknown_key(self, resolver, business):
        with pytest.raises(AuthFailure):
            resolver.resolve(RequestContext(credential="bkc_live_doesnotexist"))

    def test_revoked_key(self, db, resolver, business):
        key, raw = APIKeyService(db).generate_key(business.id, "Old", ["read:bookings"])
        APIKeyService(db).revoke_key(key.id, business.id)
        with pytest.raises(AuthFailure):
            resolver.resolve(RequestContext(credential=raw))

    def test_expired_key(self, db, resolver, business):
        _, raw = APIKeyService(db).generate_key(
            business.id, "Temp", ["read:bookings"],
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )
        with pytest.raises(AuthFailure):
            resolver.resolve(RequestContext(credential=raw))

    def test_inactive_business(self, db, resolver, business, api_key):
        business.is_active = False
        db.commit()
        with pytest.raises(NotFoundError):
            resolver.resolve(RequestContext(credential=api_key))

    def test_nothing_supplied(self, resolver, business):
        with pytest.raises(AuthFailure):
            resolver.resolve(RequestContext())

