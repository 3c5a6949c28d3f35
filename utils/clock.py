from datetime import datetime
from zoneinfo import ZoneInfo

from flask import current_app


def local_now() -> datetime:
    """Naive wall-clock time of the shop; reservation dates and times are stored in it."""
    tz = ZoneInfo(current_app.config.get("TIMEZONE", "Europe/Belgrade"))
    return datetime.now(tz).replace(tzinfo=None)
