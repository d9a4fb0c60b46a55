# booking_core/services/availability/slot_generator.py
"""
Slot generation from weekly availability rules.

Pure functions: no database access and no hidden state. Output depends only
on the arguments, so two calls with identical inputs yield identical
sequences, date-ascending then time-ascending.

Grid for one service on one weekday:
    start, start + step, start + 2*step, ...   step = duration + break_between
while the whole slot (offset + duration) fits before end_time.
"""
from collections import Counter
from datetime import date, timedelta
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from booking_core.core.exceptions import RuleDataError
from booking_core.models.booking import ACTIVE_STATUSES
from booking_core.services.rules.records import Slot, WeekdayRule
from booking_core.utils.time_utils import format_minutes, parse_hhmm, weekday_name


def rule_window(rule: WeekdayRule) -> Tuple[int, int]:
    """Return (start, end) in minutes since midnight; malformed values raise RuleDataError."""
    try:
        start = parse_hhmm(rule.start_time)
        end = parse_hhmm(rule.end_time)
    except ValueError as e:
        raise RuleDataError(
            f"Malformed availability rule for {rule.day_of_week}: {e}",
            details={"day_of_week": rule.day_of_week},
        ) from e

    if rule.break_between is None or rule.break_between < 0:
        raise RuleDataError(f"break_between must be >= 0 for {rule.day_of_week}")
    if rule.max_concurrent is None or rule.max_concurrent < 1:
        raise RuleDataError(f"max_concurrent must be >= 1 for {rule.day_of_week}")

    return start, end


def day_grid(rule: WeekdayRule, service_duration: int) -> List[int]:
    """Slot start offsets (minutes since midnight) for one weekday rule."""
    start, end = rule_window(rule)
    duration = rule.duration_for(service_duration)
    if not duration or duration <= 0:
        return []

    step = duration + rule.break_between
    offsets = []
    offset = start
    while offset + duration <= end:
        offsets.append(offset)
        offset += step
    return offsets


def is_on_grid(rule: WeekdayRule, service_duration: int, booking_time: str) -> bool:
    try:
        minutes = parse_hhmm(booking_time)
    except ValueError:
        return False
    return minutes in day_grid(rule, service_duration)


def count_active_bookings(
        existing_bookings: Iterable[Any],
        service_id: Optional[Any] = None
) -> Counter:
    """Count pending/confirmed bookings per (date, "HH:MM")."""
    counts: Counter = Counter()
    for booking in existing_bookings:
        if booking.status not in ACTIVE_STATUSES:
            continue
        if service_id is not None and str(booking.service_id) != str(service_id):
            continue
        counts[(booking.booking_date, booking.booking_time)] += 1
    return counts


def generate_slots(
        service_duration: int,
        rules: Mapping[str, WeekdayRule],
        start_date: date,
        end_date: date,
        existing_bookings: Iterable[Any] = (),
        service_id: Optional[Any] = None
) -> Iterator[Slot]:
    """
    Lazily yield every slot in [start_date, end_date].

    Every rule is validated before the first slot is produced, so a malformed
    HH:MM fails the call instead of surfacing halfway through iteration.
    A non-positive service duration makes the service unschedulable.
    """
    grids: Dict[str, Tuple[List[int], int]] = {}
    for day_name, rule in rules.items():
        grids[day_name] = (day_grid(rule, service_duration), rule.max_concurrent)

    counts = count_active_bookings(existing_bookings, service_id)

    def _iterate() -> Iterator[Slot]:
        if not service_duration or service_duration <= 0:
            return

        current = start_date
        while current <= end_date:
            grid = grids.get(weekday_name(current))
            if grid:
                offsets, max_concurrent = grid
                for offset in offsets:
                    time_str = format_minutes(offset)
                    remaining = max(max_concurrent - counts[(current, time_str)], 0)
                    yield Slot(
                        date=current,
                        time=time_str,
                        available=remaining > 0,
                        remaining_capacity=remaining,
                    )
            current += timedelta(days=1)

    return _iterate()


def group_by_date(slots: Iterable[Slot]) -> List[Dict]:
    """Shape slots as [{date, slots: [{time, available, remaining_capacity}]}]"""
    grouped: List[Dict] = []
    for slot in slots:
        if not grouped or grouped[-1]["date"] != slot.date.isoformat():
            grouped.append({"date": slot.date.isoformat(), "slots": []})
        grouped[-1]["slots"].append({
            "time": slot.time,
            "available": slot.available,
            "remaining_capacity": slot.remaining_capacity,
        })
    return grouped
