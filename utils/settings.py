import json

from models import db
from models.setting import Setting
from scheduling.working_hours import WorkingHours, normalize_working_hours

WORKING_HOURS_KEY = "working_hours"


def load_working_hours() -> WorkingHours:
    row = db.session.get(Setting, WORKING_HOURS_KEY)
    if row is None:
        return normalize_working_hours(None)
    try:
        value = json.loads(row.value_json)
    except ValueError:
        return normalize_working_hours(None)
    return normalize_working_hours(value)


def save_working_hours(hours: WorkingHours) -> WorkingHours:
    payload = json.dumps(hours.to_dict())
    row = db.session.get(Setting, WORKING_HOURS_KEY)
    if row is None:
        row = Setting(key=WORKING_HOURS_KEY, value_json=payload)
        db.session.add(row)
    else:
        row.value_json = payload
    db.session.commit()
    return hours
