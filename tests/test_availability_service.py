"""Tests for RuleStore, AvailabilityService and BusinessService against a real session."""
from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from booking_core.core.exceptions import BookingValidationError, NotFoundError, RuleDataError
from booking_core.models import Booking, ServiceAvailability
from booking_core.services.availability.availability_service import AvailabilityService
from booking_core.services.business.business_service import BusinessService
from booking_core.services.rules.rule_store import RuleStore


class TestRuleStore:

    def test_rules_keyed_by_weekday(self, db, haircut):
        rules = RuleStore(db).get_service_rules(haircut.id)
        assert list(rules) == ["monday"]
        assert rules["monday"].max_concurrent == 1

    def test_malformed_row_fails_fast(self, db, business, make_service):
        service = make_service(business, name="Broken", rules={
            "tuesday": {"start_time": "9:00", "end_time": "12:00", "break_between": 0, "max_concurrent": 1},
        })
        with pytest.raises(RuleDataError):
            RuleStore(db).get_service_rules(service.id)

    def test_service_scoped_to_business(self, db, other_business, haircut):
        with pytest.raises(NotFoundError):
            RuleStore(db).get_service(other_business.id, haircut.id)

    def test_unknown_ids(self, db, business):
        with pytest.raises(NotFoundError):
            RuleStore(db).get_service(business.id, "garbage")
        with pytest.raises(NotFoundError):
            RuleStore(db).get_business("garbage")


class TestAvailabilityService:

    def test_default_range_is_a_week(self, db, business, haircut, monday):
        slots = AvailabilityService(db).list_available_slots(business.id, haircut.id, monday)
        # monday and the following monday
        assert {s.date for s in slots} == {monday, monday + timedelta(days=7)}

    def test_inverted_range(self, db, business, haircut, monday):
        with pytest.raises(BookingValidationError):
            AvailabilityService(db).list_available_slots(business.id, haircut.id, monday, monday - timedelta(days=1))

    def test_service_without_rules_has_no_slots(self, db, business, make_service, monday):
        """Business hours alone never make a service bookable."""
        service = make_service(business, name="Consultation")
        assert AvailabilityService(db).list_available_slots(business.id, service.id, monday) == []

    def test_existing_bookings_reduce_capacity(self, db, business, haircut, monday):
        db.query(ServiceAvailability).filter(ServiceAvailability.service_id == haircut.id).update(
            {ServiceAvailability.max_concurrent: 2}
        )
        db.add(Booking(
            business_id=business.id, service_id=haircut.id, customer_name="Ada",
            customer_email="ada@lovelace.io", customer_phone="123",
            booking_date=monday, booking_time="09:00", status="pending",
        ))
        db.commit()

        slots = AvailabilityService(db).list_available_slots(business.id, haircut.id, monday, monday)

        assert slots[0].remaining_capacity == 1
        assert slots[0].available


class TestBusinessService:

    def test_info(self, db, business, haircut):
        info = BusinessService(db).get_business_info(business.id)

        assert info["services_count"] == 1
        assert info["weekly_hours"]["monday"] == {"is_open": True, "start_time": "09:00", "end_time": "17:00"}
        assert info["weekly_hours"]["saturday"]["is_open"] is False

    def test_inactive_services_hidden(self, db, business, haircut, make_service):
        make_service(business, name="Retired", is_active=False)
        assert [s["name"] for s in BusinessService(db).list_services(business.id)] == ["Haircut"]


class TestSchemaConstraints:

    def test_zero_capacity_rejected(self, db, business, make_service):
        with pytest.raises(IntegrityError):
            make_service(business, name="Nobody", rules={
                "monday": {"start_time": "09:00", "end_time": "12:00", "break_between": 0, "max_concurrent": 0},
            })

    def test_negative_break_rejected(self, db, business, make_service):
        with pytest.raises(IntegrityError):
            make_service(business, name="Rewind", rules={
                "monday": {"start_time": "09:00", "end_time": "12:00", "break_between": -5, "max_concurrent": 1},
            })

    def test_zero_duration_rejected(self, db, business, make_service):
        with pytest.raises(IntegrityError):
            make_service(business, name="Instant", duration=0)
