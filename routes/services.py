from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.reservation import Reservation
from models.service import Service
from security.rbac import admin_required
from utils.audit import log_event
from utils.validation import parse_int

services_bp = Blueprint("services", __name__)


def _validate_service(data):
    """Returns (fields, error)."""
    name = (data.get("name") or "").strip()
    if not name:
        return None, "Name is required"
    if len(name) > 120:
        return None, "Name is too long"

    price = data.get("price")
    try:
        price = float(price)
    except (TypeError, ValueError):
        return None, "Price must be a number"
    if price <= 0:
        return None, "Price must be greater than zero"

    durations = current_app.config.get("SERVICE_DURATIONS", (30, 60))
    duration = parse_int(data.get("duration_minutes"))
    if duration not in durations:
        return None, "duration_minutes must be one of " + ", ".join(str(d) for d in durations)

    description = (data.get("description") or "").strip() or None
    return {
        "name": name,
        "price": int(round(price)),
        "duration_minutes": duration,
        "description": description,
    }, None


# ---------- PUBLIC: service list ----------
@services_bp.get("/services")
def list_services():
    rows = Service.query.order_by(Service.name.asc()).all()
    return jsonify([s.to_dict() for s in rows]), 200


# ---------- ADMIN: manage services ----------
@services_bp.post("/admin/services")
@admin_required
def create_service():
    fields, error = _validate_service(request.get_json(silent=True) or {})
    if error:
        return jsonify(error=error), 400

    service = Service(**fields)
    db.session.add(service)
    db.session.commit()

    log_event("SERVICE_CREATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(service.to_dict()), 201


@services_bp.put("/admin/services/<int:service_id>")
@admin_required
def update_service(service_id: int):
    service = db.session.get(Service, service_id)
    if not service:
        return jsonify(error="Service not found"), 404

    fields, error = _validate_service(request.get_json(silent=True) or {})
    if error:
        return jsonify(error=error), 400

    for key, value in fields.items():
        setattr(service, key, value)
    db.session.commit()

    log_event("SERVICE_UPDATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(service.to_dict()), 200


@services_bp.delete("/admin/services/<int:service_id>")
@admin_required
def delete_service(service_id: int):
    service = db.session.get(Service, service_id)
    if not service:
        return jsonify(error="Service not found"), 404

    # existing reservations keep their times, they just lose the service reference
    Reservation.query.filter_by(service_id=service.id).update(
        {"service_id": None}, synchronize_session=False
    )
    db.session.delete(service)
    db.session.commit()

    log_event("SERVICE_DELETE", user_id=g.user.id, entity="service", entity_id=service_id)
    return jsonify(message="Service deleted"), 200
