"""
Working-hours policy: per-weekday open/close times plus a vacation window.

Pure functions only. The policy document itself lives in the ``settings``
table (see ``utils.settings``) and is passed in explicitly.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional


@dataclass(frozen=True)
class WorkingDay:
    is_open: bool
    open: str
    close: str


@dataclass(frozen=True)
class Vacation:
    enabled: bool = False
    date_from: str = ""
    date_to: str = ""


@dataclass(frozen=True)
class WorkingHours:
    days: Dict[str, WorkingDay]
    vacation: Vacation = field(default_factory=Vacation)

    def to_dict(self) -> dict:
        return {
            "days": {
                key: {"is_open": d.is_open, "open": d.open, "close": d.close}
                for key, d in sorted(self.days.items())
            },
            "vacation": {
                "enabled": self.vacation.enabled,
                "from": self.vacation.date_from,
                "to": self.vacation.date_to,
            },
        }


# Sunday = "0" ... Saturday = "6"
DEFAULT_WORKING_HOURS = WorkingHours(
    days={
        "0": WorkingDay(True, "10:00", "16:00"),
        "1": WorkingDay(True, "09:00", "19:00"),
        "2": WorkingDay(True, "09:00", "19:00"),
        "3": WorkingDay(True, "09:00", "19:00"),
        "4": WorkingDay(True, "09:00", "19:00"),
        "5": WorkingDay(True, "09:00", "19:00"),
        "6": WorkingDay(True, "09:00", "18:00"),
    },
    vacation=Vacation(),
)

FALLBACK_OPEN = "09:00"
FALLBACK_CLOSE = "17:00"


def normalize_working_hours(value: Optional[dict]) -> WorkingHours:
    """
    Builds a complete policy from a stored settings document.
    Anything missing falls back to DEFAULT_WORKING_HOURS, so a partial or
    absent document never closes the shop.
    """
    if not isinstance(value, dict) or not isinstance(value.get("days"), dict):
        return DEFAULT_WORKING_HOURS

    days = dict(DEFAULT_WORKING_HOURS.days)
    for key, raw in value["days"].items():
        if not isinstance(raw, dict):
            continue
        key = str(key)
        base = days.get(key)
        is_open = raw.get("is_open")
        if not isinstance(is_open, bool):
            is_open = base.is_open if base else True
        days[key] = WorkingDay(
            is_open=is_open,
            open=raw.get("open") or (base.open if base else FALLBACK_OPEN),
            close=raw.get("close") or (base.close if base else FALLBACK_CLOSE),
        )

    raw_vacation = value.get("vacation")
    if not isinstance(raw_vacation, dict):
        vacation = DEFAULT_WORKING_HOURS.vacation
    else:
        vacation = Vacation(
            enabled=bool(raw_vacation.get("enabled", False)),
            date_from=raw_vacation.get("from") or "",
            date_to=raw_vacation.get("to") or "",
        )
    return WorkingHours(days=days, vacation=vacation)


def time_to_minutes(value: str) -> int:
    parts = (value or "").split(":")

    def _num(part):
        try:
            return int(part)
        except (TypeError, ValueError):
            return 0

    hours = _num(parts[0]) if len(parts) > 0 else 0
    minutes = _num(parts[1]) if len(parts) > 1 else 0
    return hours * 60 + minutes


def minutes_to_time(total: int) -> str:
    hours = (total // 60) % 24
    minutes = total % 60
    return f"{hours:02d}:{minutes:02d}"


def end_time_for(start_time: str, duration_minutes: int) -> str:
    return minutes_to_time(time_to_minutes(start_time) + duration_minutes)


def parse_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (TypeError, ValueError):
        return None


def weekday_key(day: date) -> str:
    # date.weekday() is Monday=0; the policy is keyed Sunday=0
    return str((day.weekday() + 1) % 7)


def day_config(day, hours: WorkingHours) -> WorkingDay:
    key = weekday_key(parse_date(day))
    return hours.days.get(key) or DEFAULT_WORKING_HOURS.days[key]


def is_on_vacation(day, hours: WorkingHours) -> bool:
    vacation = hours.vacation
    if not vacation or not vacation.enabled:
        return False
    start = parse_date(vacation.date_from)
    end = parse_date(vacation.date_to)
    target = parse_date(day)
    if not start or not end or not target:
        return False
    return start <= target <= end


def candidate_slots(day: WorkingDay, step_minutes: int = 30) -> List[str]:
    if not day or not day.is_open or step_minutes <= 0:
        return []
    start = time_to_minutes(day.open)
    end = time_to_minutes(day.close)
    slots = []
    t = start
    while t + step_minutes <= end:
        slots.append(minutes_to_time(t))
        t += step_minutes
    return slots


def is_within_working_hours(day: WorkingDay, start_time: str, duration_minutes: int) -> bool:
    if not day or not day.is_open:
        return False
    start = time_to_minutes(start_time)
    return start >= time_to_minutes(day.open) and start + duration_minutes <= time_to_minutes(day.close)
