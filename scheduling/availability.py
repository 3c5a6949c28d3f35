"""
Availability for a single day.

Two overlap tests live here on purpose:

* ``free_slots`` only checks whether a candidate *start instant* falls inside
  an existing reservation. It feeds the time picker and is computed from a
  non-transactional read, so it is a hint, never a guarantee.
* ``fits`` is the strict interval test ``a.start < b.end and b.start < a.end``
  plus the open/close bounds. The transaction protocol re-runs it inside the
  atomic region before every commit.
"""
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional

from scheduling.working_hours import (
    WorkingDay,
    WorkingHours,
    candidate_slots,
    day_config,
    is_on_vacation,
    parse_date,
    time_to_minutes,
)


class Interval(NamedTuple):
    start: int  # minutes since midnight, inclusive
    end: int    # exclusive


def interval_of(reservation) -> Interval:
    return Interval(time_to_minutes(reservation.start_time), time_to_minutes(reservation.end_time))


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start < b.end and b.start < a.end


def free_slots(day, reservations: Iterable, hours: WorkingHours, step_minutes: int = 30,
               now: Optional[datetime] = None) -> List[str]:
    """
    Bookable start times for ``day`` in ascending order.

    ``reservations`` are the reservations already on that day (anything with
    ``start_time``/``end_time``). When ``now`` falls on ``day``, slots that do
    not start strictly after the current minute are dropped.
    """
    target = parse_date(day)
    if target is None or is_on_vacation(target, hours):
        return []

    config = day_config(target, hours)
    if not config.is_open:
        return []

    taken = [interval_of(r) for r in reservations]
    result = []
    for slot in candidate_slots(config, step_minutes):
        s = time_to_minutes(slot)
        if any(r.start <= s < r.end for r in taken):
            continue
        result.append(slot)

    if now is not None and now.date() == target:
        now_minutes = now.hour * 60 + now.minute
        result = [slot for slot in result if time_to_minutes(slot) > now_minutes]

    return result


def find_conflicts(start_time: str, duration_minutes: int, reservations: Iterable) -> list:
    start = time_to_minutes(start_time)
    candidate = Interval(start, start + duration_minutes)
    return [r for r in reservations if overlaps(candidate, interval_of(r))]


def fits(start_time: str, duration_minutes: int, reservations: Iterable, day: WorkingDay) -> bool:
    if not day or not day.is_open:
        return False
    start = time_to_minutes(start_time)
    end = start + duration_minutes
    if start < time_to_minutes(day.open) or end > time_to_minutes(day.close):
        return False
    return not find_conflicts(start_time, duration_minutes, reservations)


def fitting_services(start_time: str, services: Iterable, reservations: Iterable, day: WorkingDay) -> list:
    # services whose duration still fits at start_time
    reservations = list(reservations)
    return [s for s in services if fits(start_time, s.duration_minutes, reservations, day)]
