"""Tests for ReservationCoordinator: validation, capacity and concurrency."""
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone

import pytest

from booking_core.core.exceptions import (
    BookingValidationError,
    NotFoundError,
    SlotUnavailableError,
)
from booking_core.models.booking import Booking
from booking_core.services.booking.reservation_coordinator import (
    CustomerDetails,
    ReservationCoordinator,
)
from booking_core.services.notification.notification_trigger import NotificationTrigger

from conftest import FakeDispatch

CUSTOMER = CustomerDetails(name="Ada Lovelace", email="ada@lovelace.io", phone="+15551234567")


@pytest.fixture
def coordinator(db, slot_lock, dispatch):
    return ReservationCoordinator(db, notifier=NotificationTrigger(db, dispatch=dispatch), slot_lock=slot_lock)


# =============================================================================
# Happy path
# =============================================================================

class TestReserve:

    def test_commits_booking_and_enqueues_notification(self, coordinator, business, haircut, monday, dispatch, db):
        booking = coordinator.reserve(business.id, haircut.id, monday.isoformat(), "10:00", CUSTOMER, "web")

        assert booking.status == "confirmed"
        assert booking.email_confirmed is False
        assert booking.booking_source == "web"
        assert db.query(Booking).count() == 1
        assert dispatch.calls == [str(booking.id)]

    def test_last_grid_slot_is_bookable(self, coordinator, business, haircut, monday):
        booking = coordinator.reserve(business.id, haircut.id, monday, "11:00", CUSTOMER)
        assert booking.booking_time == "11:00"

    def test_cancelled_booking_frees_capacity(self, coordinator, business, haircut, monday, db):
        first = coordinator.reserve(business.id, haircut.id, monday, "09:00", CUSTOMER)
        first.status = "cancelled"
        db.commit()

        second = coordinator.reserve(business.id, haircut.id, monday, "09:00", CUSTOMER)
        assert second.id != first.id


# =============================================================================
# Rejections
# =============================================================================

class TestRejections:

    def test_full_slot_is_unavailable(self, coordinator, business, haircut, monday):
        coordinator.reserve(business.id, haircut.id, monday, "09:00", CUSTOMER)
        with pytest.raises(SlotUnavailableError):
            coordinator.reserve(business.id, haircut.id, monday, "09:00", CUSTOMER)

    def test_off_grid_time_is_validation_error(self, coordinator, business, haircut, monday):
        with pytest.raises(BookingValidationError):
            coordinator.reserve(business.id, haircut.id, monday, "09:01", CUSTOMER)

    def test_slot_overrunning_end_time_is_validation_error(self, coordinator, business, haircut, monday):
        """12:00 would end at 13:00, past the 12:00 close."""
        with pytest.raises(BookingValidationError):
            coordinator.reserve(business.id, haircut.id, monday, "12:00", CUSTOMER)

    def test_day_without_rule_is_validation_error(self, coordinator, business, haircut, monday):
        with pytest.raises(BookingValidationError):
            coordinator.reserve(business.id, haircut.id, monday + timedelta(days=1), "09:00", CUSTOMER)

    def test_malformed_date_and_time(self, coordinator, business, haircut, monday):
        with pytest.raises(BookingValidationError):
            coordinator.reserve(business.id, haircut.id, "07/01/2030", "09:00", CUSTOMER)
        with pytest.raises(BookingValidationError):
            coordinator.reserve(business.id, haircut.id, monday, "9am", CUSTOMER)

    def test_missing_customer_fields(self, coordinator, business, haircut, monday):
        with pytest.raises(BookingValidationError):
            coordinator.reserve(business.id, haircut.id, monday, "09:00",
                                CustomerDetails(name=" ", email="ada@lovelace.io", phone="123"))
        with pytest.raises(BookingValidationError):
            coordinator.reserve(business.id, haircut.id, monday, "09:00",
                                CustomerDetails(name="Ada", email="not-an-email", phone="123"))

    def test_past_date_rejected(self, db, slot_lock, business, haircut, monday):
        clock = lambda: datetime.combine(monday + timedelta(days=1), datetime.min.time(), tzinfo=timezone.utc)
        coordinator = ReservationCoordinator(db, slot_lock=slot_lock, clock=clock)
        with pytest.raises(BookingValidationError):
            coordinator.reserve(business.id, haircut.id, monday, "09:00", CUSTOMER)

    def test_earlier_time_today_rejected(self, db, slot_lock, business, haircut, monday):
        clock = lambda: datetime.combine(monday, datetime.min.time(), tzinfo=timezone.utc).replace(hour=10, minute=30)
        coordinator = ReservationCoordinator(db, slot_lock=slot_lock, clock=clock)
        with pytest.raises(BookingValidationError):
            coordinator.reserve(business.id, haircut.id, monday, "10:00", CUSTOMER)
        assert coordinator.reserve(business.id, haircut.id, monday, "11:00", CUSTOMER).booking_time == "11:00"

    def test_service_of_other_business_is_not_found(self, coordinator, other_business, haircut, monday):
        with pytest.raises(NotFoundError):
            coordinator.reserve(other_business.id, haircut.id, monday, "09:00", CUSTOMER)

    def test_inactive_service_is_not_found(self, coordinator, business, make_service, monday):
        retired = make_service(business, name="Retired", is_active=False, rules={
            "monday": {"start_time": "09:00", "end_time": "12:00", "break_between": 0, "max_concurrent": 1},
        })
        with pytest.raises(NotFoundError):
            coordinator.reserve(business.id, retired.id, monday, "09:00", CUSTOMER)


# =============================================================================
# Notification hand-off
# =============================================================================

class TestNotificationHandOff:

    def test_enqueue_failure_keeps_booking(self, db, slot_lock, business, haircut, monday):
        trigger = NotificationTrigger(db, dispatch=FakeDispatch(fail=True))
        coordinator = ReservationCoordinator(db, notifier=trigger, slot_lock=slot_lock)

        booking = coordinator.reserve(business.id, haircut.id, monday, "09:00", CUSTOMER)

        db.expire_all()
        stored = db.get(Booking, booking.id)
        assert stored is not None
        assert stored.email_confirmed is False
        assert "broker down" in stored.last_notification_error


# =============================================================================
# Concurrency
# =============================================================================

class TestConcurrency:

    def _race(self, session_factory, slot_lock, business_id, service_id, day, attempts):
        outcomes = []
        barrier = threading.Barrier(attempts)
        guard = threading.Lock()

        def attempt():
            session = session_factory()
            try:
                coordinator = ReservationCoordinator(session, slot_lock=slot_lock)
                barrier.wait()
                try:
                    coordinator.reserve(business_id, service_id, day, "09:00", CUSTOMER)
                    result = "booked"
                except SlotUnavailableError:
                    result = "unavailable"
                with guard:
                    outcomes.append(result)
            finally:
                session.close()

        threads = [threading.Thread(target=attempt) for _ in range(attempts)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return outcomes

    def test_two_requests_single_capacity(self, session_factory, slot_lock, business, haircut, monday):
        outcomes = self._race(session_factory, slot_lock, business.id, haircut.id, monday, attempts=2)
        assert sorted(outcomes) == ["booked", "unavailable"]

    def test_capacity_never_exceeded(self, db, session_factory, slot_lock, business, make_service, monday):
        chairs = make_service(business, name="Group class", rules={
            "monday": {"start_time": "09:00", "end_time": "12:00", "break_between": 0, "max_concurrent": 3},
        })

        outcomes = self._race(session_factory, slot_lock, business.id, chairs.id, monday, attempts=8)

        assert outcomes.count("booked") == 3
        assert outcomes.count("unavailable") == 5
        db.expire_all()
        assert db.query(Booking).filter(Booking.service_id == chairs.id).count() == 3


# =============================================================================
# Lost lock
# =============================================================================

class LeakyHold:
    """A lock that lapsed: another writer commits the same slot just before our commit."""

    def __init__(self, session_factory, lost=False):
        self.session_factory = session_factory
        self.lost = lost
        self.key = None

    @contextmanager
    def hold(self, key):
        self.key = key
        yield self

    def confirm(self):
        if self.lost:
            raise SlotUnavailableError("lock lost")
        business_id, service_id, day, time = self.key
        session = self.session_factory()
        try:
            session.add(Booking(
                business_id=uuid.UUID(business_id), service_id=uuid.UUID(service_id),
                customer_name="Grace Hopper", customer_email="grace@lovelace.io",
                customer_phone="+15557654321", booking_date=date.fromisoformat(day),
                booking_time=time, status="confirmed", booking_source="web",
            ))
            session.commit()
        finally:
            session.close()


class TestLostLock:

    def test_overflow_after_commit_is_withdrawn(self, db, session_factory, business, haircut, monday):
        coordinator = ReservationCoordinator(db, slot_lock=LeakyHold(session_factory))

        with pytest.raises(SlotUnavailableError):
            coordinator.reserve(business.id, haircut.id, monday, "09:00", CUSTOMER)

        db.expire_all()
        remaining = db.query(Booking).filter(Booking.booking_time == "09:00").all()
        assert [b.customer_name for b in remaining] == ["Grace Hopper"]

    def test_lost_lock_writes_nothing(self, db, session_factory, business, haircut, monday, dispatch):
        coordinator = ReservationCoordinator(
            db, notifier=NotificationTrigger(db, dispatch=dispatch),
            slot_lock=LeakyHold(session_factory, lost=True),
        )

        with pytest.raises(SlotUnavailableError):
            coordinator.reserve(business.id, haircut.id, monday, "09:00", CUSTOMER)

        assert db.query(Booking).count() == 0
        assert dispatch.calls == []
