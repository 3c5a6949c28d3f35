from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.reservation import Reservation
from models.service import Service
from scheduling.availability import free_slots, fitting_services
from scheduling.errors import SlotTaken
from scheduling.protocol import create_reservation, cancel_reservation
from scheduling.types import BookedInterval, ReservationRequest, UserBooking
from scheduling.working_hours import day_config, is_on_vacation
from utils.audit import log_event
from utils.auth_context import login_required, verified_required
from utils.clock import local_now
from utils.settings import load_working_hours
from utils.validation import is_valid_date, is_valid_time, parse_int

booking_bp = Blueprint("booking", __name__)


def _booked_on(date: str):
    rows = Reservation.query.filter_by(date=date).all()
    return [BookedInterval(r.start_time, r.end_time, r.id) for r in rows]


def _starts_at(date: str, start_time: str) -> datetime:
    return datetime.fromisoformat(f"{date}T{start_time}")


# ---------- PUBLIC: free start times for a day ----------
@booking_bp.get("/availability")
def availability():
    date = request.args.get("date")
    if not is_valid_date(date):
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    hours = load_working_hours()
    day = day_config(date, hours)
    slots = free_slots(
        date,
        _booked_on(date),
        hours,
        step_minutes=current_app.config.get("SLOT_STEP_MINUTES", 30),
        now=local_now(),
    )
    return jsonify(
        date=date,
        on_vacation=is_on_vacation(date, hours),
        is_open=day.is_open,
        open=day.open,
        close=day.close,
        slots=slots,
    ), 200


# ---------- PUBLIC: services that still fit at a picked time ----------
@booking_bp.get("/availability/services")
def available_services():
    date = request.args.get("date")
    start_time = request.args.get("time")
    if not is_valid_date(date) or not is_valid_time(start_time):
        return jsonify(error="date (YYYY-MM-DD) and time (HH:MM) are required"), 400

    hours = load_working_hours()
    if is_on_vacation(date, hours):
        return jsonify([]), 200

    services = Service.query.order_by(Service.name.asc()).all()
    rows = fitting_services(start_time, services, _booked_on(date), day_config(date, hours))
    return jsonify([s.to_dict() for s in rows]), 200


# ---------- CUSTOMERS: book a service (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("/reservations")
@verified_required
def create_booking():
    data = request.get_json(silent=True) or {}
    service_id = parse_int(data.get("service_id"))
    date = data.get("date")
    start_time = data.get("start_time")

    if not service_id or not is_valid_date(date) or not is_valid_time(start_time):
        return jsonify(error="service_id, date (YYYY-MM-DD) and start_time (HH:MM) are required"), 400

    service = db.session.get(Service, service_id)
    if not service:
        return jsonify(error="Service not found"), 404

    now = local_now()
    if _starts_at(date, start_time) <= now:
        return jsonify(error="Cannot book past/started slots"), 400
    days_ahead = current_app.config.get("BOOKING_DAYS_AHEAD", 14)
    if datetime.fromisoformat(date).date() > now.date() + timedelta(days=days_ahead):
        return jsonify(error=f"Bookings are open at most {days_ahead} days ahead"), 400

    req = ReservationRequest(
        date=date,
        start_time=start_time,
        duration_minutes=service.duration_minutes,
        subject=UserBooking(user_id=g.user.id, service_id=service.id),
    )
    try:
        reservation_id = create_reservation(req, load_working_hours())
    except SlotTaken:
        log_event("BOOKING_FAIL_SLOT_TAKEN", user_id=g.user.id, entity="slot", entity_id=f"{date}_{start_time}")
        raise

    log_event("BOOKING_CREATE", user_id=g.user.id, entity="reservation", entity_id=reservation_id,
              metadata={"service_id": service.id, "date": date, "start_time": start_time})
    reservation = db.session.get(Reservation, reservation_id)
    return jsonify(reservation.to_dict()), 201


# ---------- CUSTOMERS: my upcoming reservations ----------
@booking_bp.get("/reservations/me")
@login_required
def my_reservations():
    today = local_now().date().isoformat()
    rows = (
        Reservation.query
        .filter(Reservation.user_id == g.user.id, Reservation.date >= today)
        .order_by(Reservation.date.asc(), Reservation.start_time.asc())
        .all()
    )
    out = []
    for r in rows:
        item = r.to_dict()
        item["service"] = r.service.to_dict() if r.service else None
        out.append(item)
    return jsonify(out), 200


# ---------- CUSTOMERS: cancel own reservation ----------
@booking_bp.delete("/reservations/<int:reservation_id>")
@login_required
def cancel_booking(reservation_id: int):
    reservation = db.session.get(Reservation, reservation_id)
    if not reservation or reservation.user_id != g.user.id:
        return jsonify(error="Reservation not found"), 404

    if _starts_at(reservation.date, reservation.start_time) <= local_now():
        return jsonify(error="Past reservations cannot be cancelled"), 400

    cancel_reservation(reservation_id)
    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="reservation", entity_id=reservation_id)
    return jsonify(message="Cancelled"), 200
