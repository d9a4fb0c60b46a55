"""Tests for settings validation at startup."""
import pytest
from pydantic import ValidationError

from booking_core.config.settings import Settings


class TestSettings:

    def test_unknown_lock_backend_rejected(self):
        with pytest.raises(ValidationError):
            Settings(SLOT_LOCK_BACKEND="memcached")

    def test_unknown_default_status_rejected(self):
        with pytest.raises(ValidationError):
            Settings(BOOKING_DEFAULT_STATUS="cancelled")

    def test_accepted_values(self):
        settings = Settings(SLOT_LOCK_BACKEND="local", BOOKING_DEFAULT_STATUS="pending")
        assert settings.SLOT_LOCK_BACKEND == "local"
        assert settings.BOOKING_DEFAULT_STATUS == "pending"
