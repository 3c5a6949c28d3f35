import re
from datetime import date

_TIME = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def is_valid_date(value) -> bool:
    if not isinstance(value, str) or len(value) != 10:
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_time(value) -> bool:
    return isinstance(value, str) and bool(_TIME.match(value))


def parse_int(value):
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
