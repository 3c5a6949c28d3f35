from flask import Blueprint, request, jsonify, g

from scheduling.working_hours import normalize_working_hours
from security.rbac import admin_required
from utils.audit import log_event
from utils.settings import load_working_hours, save_working_hours
from utils.validation import is_valid_date, is_valid_time

settings_bp = Blueprint("settings", __name__)


def _validate_working_hours(data):
    days = data.get("days")
    if not isinstance(days, dict):
        return "days must be an object keyed 0 (Sunday) to 6 (Saturday)"
    for key, day in days.items():
        if str(key) not in {"0", "1", "2", "3", "4", "5", "6"}:
            return f"Unknown day {key}"
        if not isinstance(day, dict):
            return f"Day {key} must be an object"
        is_open = day.get("is_open", True)
        if not isinstance(is_open, bool):
            return f"Day {key}: is_open must be true or false"
        open_time = day.get("open")
        close_time = day.get("close")
        if not is_open:
            # closed days may omit their times
            if any(t is not None and not is_valid_time(t) for t in (open_time, close_time)):
                return f"Day {key}: open and close must be HH:MM"
            continue
        if not is_valid_time(open_time) or not is_valid_time(close_time):
            return f"Day {key}: open and close must be HH:MM"
        if close_time <= open_time:
            return f"Day {key}: close must be after open"

    vacation = data.get("vacation") or {}
    if not isinstance(vacation, dict):
        return "vacation must be an object"
    if vacation.get("enabled"):
        date_from = vacation.get("from")
        date_to = vacation.get("to")
        if not is_valid_date(date_from) or not is_valid_date(date_to):
            return "vacation from/to must be YYYY-MM-DD"
        if date_to < date_from:
            return "vacation to must not be before from"
    return None


# ---------- PUBLIC: working hours (booking form, calendar) ----------
@settings_bp.get("/working-hours")
def get_working_hours():
    return jsonify(load_working_hours().to_dict()), 200


# ---------- ADMIN: edit working hours ----------
@settings_bp.get("/admin/settings/working-hours")
@admin_required
def admin_get_working_hours():
    return jsonify(load_working_hours().to_dict()), 200


@settings_bp.put("/admin/settings/working-hours")
@admin_required
def admin_save_working_hours():
    data = request.get_json(silent=True) or {}
    error = _validate_working_hours(data)
    if error:
        return jsonify(error=error), 400

    hours = save_working_hours(normalize_working_hours(data))
    log_event("WORKING_HOURS_UPDATE", user_id=g.user.id, entity="settings", entity_id="working_hours")
    return jsonify(hours.to_dict()), 200
