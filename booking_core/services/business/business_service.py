# booking_core/services/business/business_service.py
"""Service for business profile lookups"""
from typing import Dict, List
from sqlalchemy.orm import Session
import logging

from booking_core.models.service import Service
from booking_core.services.rules.rule_store import RuleStore
from booking_core.utils.time_utils import DAYS_OF_WEEK

logger = logging.getLogger(__name__)


class BusinessService:
    """Handles business-related read operations"""

    def __init__(self, db: Session, rule_store: RuleStore = None):
        self.db = db
        self.rule_store = rule_store or RuleStore(db)

    def get_business_info(self, business_id) -> Dict:
        """Profile, number of active services and the weekly hours, monday first"""
        business = self.rule_store.get_business(business_id)
        hours = self.rule_store.get_business_hours(business.id)

        services_count = self.db.query(Service).filter(
            Service.business_id == business.id,
            Service.is_active == True
        ).count()

        weekly_hours = {}
        for day in DAYS_OF_WEEK:
            rule = hours.get(day)
            if rule and rule.is_open:
                weekly_hours[day] = {
                    "is_open": True,
                    "start_time": rule.start_time,
                    "end_time": rule.end_time,
                }
            else:
                weekly_hours[day] = {"is_open": False, "start_time": None, "end_time": None}

        return {
            "profile": business.to_dict(),
            "services_count": services_count,
            "weekly_hours": weekly_hours,
        }

    def list_services(self, business_id) -> List[Dict]:
        business = self.rule_store.get_business(business_id)

        services = self.db.query(Service).filter(
            Service.business_id == business.id,
            Service.is_active == True
        ).order_by(Service.name).all()

        return [service.to_dict() for service in services]
