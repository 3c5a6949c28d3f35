from flask import Blueprint, jsonify, g, request, current_app
from security.rbac import ROLE_ADMIN, ROLE_USER, admin_required
from security.password import hash_password
from security.password_policy import validate_password
from security.session import revoke_all_sessions
from utils.audit import log_event
from models import db
from models.user import User, Role
from routes.auth import user_payload, validate_profile

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

USER_STATUSES = {"pending", "verified", "disabled"}


def _customer(user_id: int):
    user = db.session.get(User, user_id)
    if not user or user.is_admin:
        return None
    return user


@admin_bp.get("/users")
@admin_required
def list_users():
    status = (request.args.get("status") or "").strip().lower()
    if status and status not in USER_STATUSES:
        return jsonify(error="status must be pending, verified or disabled"), 400

    q = User.query.filter(~User.roles.any(Role.name == ROLE_ADMIN))
    if status == "pending":
        q = q.filter(User.verified.is_(False), User.disabled.is_(False))
    elif status == "verified":
        q = q.filter(User.verified.is_(True), User.disabled.is_(False))
    elif status == "disabled":
        q = q.filter(User.disabled.is_(True))

    users = q.order_by(User.created_at.desc()).limit(500).all()
    return jsonify([user_payload(u) for u in users]), 200


@admin_bp.post("/users")
@admin_required
def create_user():
    """Accounts created by the admin start out verified."""
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if "@" not in email or len(email) > 255:
        return jsonify(error="Invalid email"), 400
    valid, errors = validate_password(password)
    if not valid:
        return jsonify(error="Password does not meet policy", details=errors), 400

    full_name, phone, error = validate_profile(data.get("full_name"), data.get("phone_number"))
    if error:
        return jsonify(error=error), 400
    if User.query.filter_by(email=email).first():
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password, rounds=current_app.config.get("BCRYPT_ROUNDS", 12)),
        full_name=full_name,
        phone_number=phone,
        verified=True,
    )
    user_role = Role.query.filter_by(name=ROLE_USER).first()
    if user_role:
        user.roles.append(user_role)
    db.session.add(user)
    db.session.commit()

    log_event("ADMIN_USER_CREATE", user_id=g.user.id, entity="user", entity_id=user.id)
    return jsonify(user_payload(user)), 201


@admin_bp.patch("/users/<int:user_id>")
@admin_required
def update_user(user_id: int):
    user = _customer(user_id)
    if not user:
        return jsonify(error="User not found"), 404

    data = request.get_json(silent=True) or {}
    full_name, phone, error = validate_profile(
        data.get("full_name", user.full_name),
        data.get("phone_number", user.phone_number),
        exclude_user_id=user.id,
    )
    if error:
        return jsonify(error=error), 400

    user.full_name = full_name
    user.phone_number = phone
    db.session.commit()

    log_event("ADMIN_USER_UPDATE", user_id=g.user.id, entity="user", entity_id=user.id)
    return jsonify(user_payload(user)), 200


@admin_bp.post("/users/<int:user_id>/verify")
@admin_required
def verify_user(user_id: int):
    user = _customer(user_id)
    if not user:
        return jsonify(error="User not found"), 404

    user.verified = True
    db.session.commit()

    log_event("ADMIN_USER_VERIFY", user_id=g.user.id, entity="user", entity_id=user.id)
    return jsonify(user_payload(user)), 200


@admin_bp.post("/users/<int:user_id>/disable")
@admin_required
def disable_user(user_id: int):
    user = _customer(user_id)
    if not user:
        return jsonify(error="User not found"), 404

    user.disabled = True
    db.session.commit()
    revoked = revoke_all_sessions(user.id)

    log_event("ADMIN_USER_DISABLE", user_id=g.user.id, entity="user", entity_id=user.id,
              metadata={"revoked_sessions": revoked})
    return jsonify(user_payload(user)), 200


@admin_bp.post("/users/<int:user_id>/enable")
@admin_required
def enable_user(user_id: int):
    user = _customer(user_id)
    if not user:
        return jsonify(error="User not found"), 404

    user.disabled = False
    db.session.commit()

    log_event("ADMIN_USER_ENABLE", user_id=g.user.id, entity="user", entity_id=user.id)
    return jsonify(user_payload(user)), 200
