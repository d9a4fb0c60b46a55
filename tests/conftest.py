"""
Pytest configuration and fixtures.

Every test gets its own SQLite file database and an in-process slot lock,
so no Postgres, Redis or broker is needed.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./booking_core_test.db")
os.environ.setdefault("SLOT_LOCK_BACKEND", "local")
os.environ.setdefault("VOICE_TOOL_SECRET", "tool-secret")
os.environ.setdefault("CRON_SECRET", "cron-secret")

from datetime import date, timedelta
from decimal import Decimal
from typing import List

import pytest
from sqlalchemy.orm import sessionmaker

from booking_core.config.database import build_engine
from booking_core.models import (
    Base,
    Business,
    BusinessHours,
    Service,
    ServiceAvailability,
)
from booking_core.services.api_key.api_key_service import APIKeyService
from booking_core.services.booking.slot_lock import LocalSlotLock


class FakeEmailSender:
    """Records sends; set fail_customer / fail_owner to simulate SMTP errors."""

    def __init__(self, fail_customer: bool = False, fail_owner: bool = False):
        self.fail_customer = fail_customer
        self.fail_owner = fail_owner
        self.customer_emails: List[str] = []
        self.owner_emails: List[str] = []

    def send_booking_confirmation(self, booking, service, business):
        if self.fail_customer:
            raise ConnectionError("SMTP unreachable")
        self.customer_emails.append(str(booking.id))
        return True

    def send_owner_booking_notice(self, booking, service, business):
        if self.fail_owner:
            raise ConnectionError("SMTP unreachable")
        self.owner_emails.append(str(booking.id))
        return True


class FakeDispatch:
    """Stands in for the Celery enqueue."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[str] = []

    def __call__(self, booking_id: str):
        if self.fail:
            raise ConnectionError("broker down")
        self.calls.append(booking_id)


def next_monday(weeks_ahead: int = 1) -> date:
    today = date.today()
    return today + timedelta(days=(7 - today.weekday()) + 7 * (weeks_ahead - 1))


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def monday() -> date:
    return next_monday(weeks_ahead=2)


@pytest.fixture
def business(db):
    business = Business(
        name="Fade Street Barbers",
        email="owner@fadestreet.io",
        phone_number="+15550001111",
        business_type="barber",
        timezone="UTC",
        voice_assistant_id="asst_fade_street",
        is_active=True,
    )
    db.add(business)
    db.flush()

    for day in ("monday", "tuesday", "wednesday", "thursday", "friday"):
        db.add(BusinessHours(
            business_id=business.id, day_of_week=day, is_open=True,
            start_time="09:00", end_time="17:00",
        ))
    db.add(BusinessHours(
        business_id=business.id, day_of_week="sunday", is_open=False,
        start_time="00:00", end_time="00:00",
    ))
    db.commit()
    db.refresh(business)
    return business


@pytest.fixture
def other_business(db):
    business = Business(
        name="Other Salon",
        phone_number="+15559998888",
        business_type="salon",
        timezone="UTC",
        is_active=True,
    )
    db.add(business)
    db.commit()
    db.refresh(business)
    return business


@pytest.fixture
def make_service(db):
    def _make(business, name="Haircut", duration=60, rules=None, is_active=True):
        service = Service(
            business_id=business.id,
            name=name,
            duration=duration,
            price=Decimal("30.00"),
            category="hair",
            is_active=is_active,
        )
        db.add(service)
        db.flush()
        for day, values in (rules or {}).items():
            db.add(ServiceAvailability(service_id=service.id, day_of_week=day, **values))
        db.commit()
        db.refresh(service)
        return service

    return _make


@pytest.fixture
def haircut(business, make_service):
    """Mondays 09:00-12:00, 60 minutes, one chair"""
    return make_service(business, rules={
        "monday": {"start_time": "09:00", "end_time": "12:00", "break_between": 0, "max_concurrent": 1},
    })


@pytest.fixture
def slot_lock():
    return LocalSlotLock(timeout=5.0)


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def dispatch():
    return FakeDispatch()


@pytest.fixture
def api_key(db, business):
    _, raw_key = APIKeyService(db).generate_key(
        business_id=business.id, name="Front desk", scopes=["*"], environment="test"
    )
    return raw_key
