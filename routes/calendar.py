from datetime import date as date_cls, timedelta

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.reservation import Reservation
from models.service import Service
from models.user import User
from scheduling.errors import SlotTaken
from scheduling.protocol import create_reservation, move_reservation, cancel_reservation
from scheduling.types import (
    DEFAULT_COLOR_BY_KIND,
    GUEST_CARD_COLORS,
    KIND_BREAK,
    KIND_GUEST,
    KIND_USER,
    KINDS,
    USER_CARD_COLORS,
    BreakBlock,
    GuestBooking,
    ReservationRequest,
    UserBooking,
)
from security.rbac import admin_required
from utils.audit import log_event
from utils.settings import load_working_hours
from utils.validation import is_valid_date, is_valid_time, parse_int

calendar_bp = Blueprint("calendar", __name__, url_prefix="/admin/reservations")

MAX_RANGE_DAYS = 62
PALETTE_BY_KIND = {
    KIND_USER: USER_CARD_COLORS,
    KIND_GUEST: GUEST_CARD_COLORS,
}


def _event_title(r: Reservation) -> str:
    if r.kind == KIND_BREAK:
        return "Break"
    if r.kind == KIND_GUEST:
        return r.guest_name or "Guest"
    if r.user:
        return r.user.display_name
    return "User"


def _event(r: Reservation) -> dict:
    item = r.to_dict()
    item.update(
        title=_event_title(r),
        start=f"{r.date}T{r.start_time}",
        end=f"{r.date}T{r.end_time}",
        color=r.card_color or DEFAULT_COLOR_BY_KIND.get(r.kind, DEFAULT_COLOR_BY_KIND[KIND_USER]),
        service=r.service.name if r.service else None,
    )
    return item


def _subject_from(data):
    """Returns (subject, card_color, error) for the admin create form."""
    kind = (data.get("kind") or KIND_GUEST).strip().lower()
    if kind not in KINDS:
        return None, None, "kind must be user, guest or break"

    if kind == KIND_BREAK:
        return BreakBlock(), DEFAULT_COLOR_BY_KIND[KIND_BREAK], None

    service_id = parse_int(data.get("service_id"))
    if data.get("service_id") not in (None, "") and not service_id:
        return None, None, "Invalid service_id"
    if service_id and not db.session.get(Service, service_id):
        return None, None, "Service not found"

    card_color = data.get("card_color") or DEFAULT_COLOR_BY_KIND[kind]
    if card_color not in PALETTE_BY_KIND[kind]:
        return None, None, "card_color must be one of " + ", ".join(PALETTE_BY_KIND[kind])

    if kind == KIND_USER:
        user_id = parse_int(data.get("user_id"))
        user = db.session.get(User, user_id) if user_id else None
        if not user or user.disabled:
            return None, None, "Select a user"
        return UserBooking(user_id=user.id, service_id=service_id), card_color, None

    guest_name = (data.get("guest_name") or "").strip()
    if not guest_name:
        return None, None, "Enter the guest name"
    if len(guest_name) > 120:
        return None, None, "Guest name is too long"
    return GuestBooking(name=guest_name, service_id=service_id), card_color, None


# ---------- ADMIN: calendar range ----------
@calendar_bp.get("")
@admin_required
def list_reservations():
    date_from = request.args.get("from")
    date_to = request.args.get("to")
    if not is_valid_date(date_from) or not is_valid_date(date_to):
        return jsonify(error="from and to are required (YYYY-MM-DD)"), 400
    if date_to < date_from:
        return jsonify(error="to must not be before from"), 400
    if date_cls.fromisoformat(date_to) - date_cls.fromisoformat(date_from) > timedelta(days=MAX_RANGE_DAYS):
        return jsonify(error=f"Range is limited to {MAX_RANGE_DAYS} days"), 400

    rows = (
        Reservation.query
        .filter(Reservation.date >= date_from, Reservation.date <= date_to)
        .order_by(Reservation.date.asc(), Reservation.start_time.asc())
        .all()
    )
    return jsonify([_event(r) for r in rows]), 200


# ---------- ADMIN: create user/guest/break reservation ----------
@calendar_bp.post("")
@admin_required
def create_admin_reservation():
    data = request.get_json(silent=True) or {}
    date = data.get("date")
    start_time = data.get("start_time")
    if not is_valid_date(date) or not is_valid_time(start_time):
        return jsonify(error="date (YYYY-MM-DD) and start_time (HH:MM) are required"), 400

    durations = current_app.config.get("SERVICE_DURATIONS", (30, 60))
    duration = parse_int(data.get("duration_minutes", durations[0]))
    if duration not in durations:
        return jsonify(error="duration_minutes must be one of " + ", ".join(str(d) for d in durations)), 400

    subject, card_color, error = _subject_from(data)
    if error:
        return jsonify(error=error), 400

    req = ReservationRequest(
        date=date,
        start_time=start_time,
        duration_minutes=duration,
        subject=subject,
        card_color=card_color,
    )
    try:
        reservation_id = create_reservation(req, load_working_hours())
    except SlotTaken:
        log_event("ADMIN_RESERVATION_FAIL_SLOT_TAKEN", user_id=g.user.id, entity="slot",
                  entity_id=f"{date}_{start_time}")
        raise

    log_event("ADMIN_RESERVATION_CREATE", user_id=g.user.id, entity="reservation", entity_id=reservation_id,
              metadata={"kind": subject.kind, "date": date, "start_time": start_time})
    return jsonify(_event(db.session.get(Reservation, reservation_id))), 201


# ---------- ADMIN: drag & drop move ----------
@calendar_bp.post("/<int:reservation_id>/move")
@admin_required
def move_admin_reservation(reservation_id: int):
    data = request.get_json(silent=True) or {}
    date = data.get("date")
    start_time = data.get("start_time")
    end_time = data.get("end_time")
    if not is_valid_date(date) or not is_valid_time(start_time):
        return jsonify(error="date (YYYY-MM-DD) and start_time (HH:MM) are required"), 400
    if end_time is not None and not is_valid_time(end_time):
        return jsonify(error="end_time must be HH:MM"), 400

    before = db.session.get(Reservation, reservation_id)
    previous = {"date": before.date, "start_time": before.start_time} if before else None

    reservation = move_reservation(reservation_id, date, start_time, end_time, load_working_hours())

    log_event("RESERVATION_MOVE", user_id=g.user.id, entity="reservation", entity_id=reservation_id,
              metadata={"from": previous, "to": {"date": date, "start_time": start_time}})
    return jsonify(_event(reservation)), 200


# ---------- ADMIN: delete ----------
@calendar_bp.delete("/<int:reservation_id>")
@admin_required
def delete_admin_reservation(reservation_id: int):
    deleted = cancel_reservation(reservation_id)

    log_event("RESERVATION_CANCEL", user_id=g.user.id, entity="reservation", entity_id=reservation_id,
              metadata={"date": deleted["date"], "start_time": deleted["start_time"]})
    return jsonify(message="Reservation deleted"), 200
