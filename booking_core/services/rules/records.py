# booking_core/services/rules/records.py
"""
Structured rule records handed from the RuleStore to the slot generator.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class WeekdayRule:
    """
    Slot generation parameters for one service on one weekday.

    Attributes:
        day_of_week: "monday".."sunday"
        start_time: window start, "HH:MM"
        end_time: window end, "HH:MM"; a slot must finish by this time
        break_between: minutes between consecutive slots
        max_concurrent: bookings allowed at one slot
        slot_duration: overrides the service duration when set
    """
    day_of_week: str
    start_time: str
    end_time: str
    break_between: int = 0
    max_concurrent: int = 1
    slot_duration: Optional[int] = None

    def duration_for(self, service_duration: int) -> int:
        return self.slot_duration if self.slot_duration else service_duration


@dataclass(frozen=True)
class BusinessHoursRule:
    day_of_week: str
    is_open: bool
    start_time: str
    end_time: str


@dataclass(frozen=True)
class Slot:
    date: date
    time: str
    available: bool
    remaining_capacity: int

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "time": self.time,
            "available": self.available,
            "remaining_capacity": self.remaining_capacity,
        }
