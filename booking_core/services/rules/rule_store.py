# booking_core/services/rules/rule_store.py
"""Read-only access to operating hours and per-service availability rules"""
from typing import Dict
from uuid import UUID
from sqlalchemy.orm import Session
import logging

from booking_core.core.exceptions import NotFoundError, RuleDataError
from booking_core.models.business import Business, BusinessHours
from booking_core.models.service import Service, ServiceAvailability
from booking_core.services.availability.slot_generator import rule_window
from booking_core.services.rules.records import BusinessHoursRule, WeekdayRule
from booking_core.utils.time_utils import DAYS_OF_WEEK, normalize_day_name, parse_hhmm

logger = logging.getLogger(__name__)


def _to_uuid(value, label: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError(f"{label} not found: {value}")


class RuleStore:
    """Rows in, validated records out. Never writes."""

    def __init__(self, db: Session):
        self.db = db

    def get_business(self, business_id) -> Business:
        business = self.db.query(Business).filter(
            Business.id == _to_uuid(business_id, "Business"),
            Business.is_active == True
        ).first()
        if not business:
            raise NotFoundError(f"Business not found: {business_id}")
        return business

    def get_service(self, business_id, service_id) -> Service:
        """Active service owned by the given business"""
        service = self.db.query(Service).filter(
            Service.id == _to_uuid(service_id, "Service"),
            Service.business_id == _to_uuid(business_id, "Business"),
            Service.is_active == True
        ).first()
        if not service:
            raise NotFoundError(f"Service not found: {service_id}")
        return service

    def get_business_hours(self, business_id) -> Dict[str, BusinessHoursRule]:
        rows = self.db.query(BusinessHours).filter(
            BusinessHours.business_id == _to_uuid(business_id, "Business")
        ).all()

        hours = {}
        for row in rows:
            day = self._day(row.day_of_week)
            try:
                parse_hhmm(row.start_time)
                parse_hhmm(row.end_time)
            except ValueError as e:
                raise RuleDataError(f"Malformed business hours for {day}: {e}") from e
            hours[day] = BusinessHoursRule(
                day_of_week=day,
                is_open=bool(row.is_open),
                start_time=row.start_time,
                end_time=row.end_time,
            )
        return hours

    def get_service_rules(self, service_id) -> Dict[str, WeekdayRule]:
        """Weekday -> rule. Weekdays without a row are absent (service closed)."""
        rows = self.db.query(ServiceAvailability).filter(
            ServiceAvailability.service_id == _to_uuid(service_id, "Service")
        ).all()

        rules = {}
        for row in rows:
            day = self._day(row.day_of_week)
            rule = WeekdayRule(
                day_of_week=day,
                start_time=row.start_time,
                end_time=row.end_time,
                break_between=row.break_between if row.break_between is not None else 0,
                max_concurrent=row.max_concurrent if row.max_concurrent is not None else 1,
                slot_duration=row.slot_duration,
            )
            rule_window(rule)
            rules[day] = rule

        # Stable weekday order for callers that iterate
        return {day: rules[day] for day in DAYS_OF_WEEK if day in rules}

    @staticmethod
    def _day(value: str) -> str:
        try:
            return normalize_day_name(value)
        except ValueError as e:
            raise RuleDataError(str(e)) from e
