from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.password import hash_password, verify_password
from security.password_policy import validate_password
from security.rbac import ROLE_USER
from security.session import create_session, revoke_session, revoke_all_sessions
from utils.audit import log_event
from utils.auth_context import login_required
from utils.phone import normalize_phone, is_valid_serbian_phone


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "phone_number": user.phone_number,
        "roles": [r.name for r in user.roles],
        "verified": user.verified,
        "disabled": user.disabled,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def validate_profile(full_name, phone_number, exclude_user_id=None):
    """Returns (full_name, phone, error). Full names are unique; phones must be Serbian numbers."""
    full_name = (full_name or "").strip()
    if not full_name or len(full_name) > 120:
        return None, None, "full_name is required"

    phone = normalize_phone(phone_number or "")
    if phone and not is_valid_serbian_phone(phone):
        return None, None, "Invalid phone_number"

    q = User.query.filter(User.full_name == full_name)
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    if q.first():
        return None, None, "A user with this full name already exists"

    return full_name, phone or None, None


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    valid, errors = validate_password(password)
    if not valid:
        return jsonify(error="Password does not meet policy", details=errors), 400
    if not (data.get("phone_number") or "").strip():
        return jsonify(error="phone_number is required"), 400

    full_name, phone, error = validate_profile(data.get("full_name"), data.get("phone_number"))
    if error:
        return jsonify(error=error), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password, rounds=current_app.config.get("BCRYPT_ROUNDS", 12)),
        full_name=full_name,
        phone_number=phone,
        verified=False,
    )
    db.session.add(user)
    db.session.flush()

    user_role = Role.query.filter_by(name=ROLE_USER).first()
    if user_role:
        user.roles.append(user_role)

    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id)

    return jsonify(message="Registered successfully", id=user.id), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    if user.disabled:
        log_event("LOGIN_FAIL_DISABLED", user_id=user.id)
        return jsonify(error="Account is disabled"), 403

    raw_token = create_session(user.id)
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "barbershop_session")

    resp = jsonify(message="Login OK", user=user_payload(user))
    resp.set_cookie(
        cookie_name,
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 30 * 24 * 60 * 60),
        path="/",
    )

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(user_payload(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "barbershop_session")
    revoke_session(request.cookies.get(cookie_name))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200


@auth_bp.post("/logout_all")
@login_required
def logout_all():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "barbershop_session")

    count = revoke_all_sessions(g.user.id)
    log_event("LOGOUT_ALL", user_id=g.user.id, metadata={"revoked_sessions": count})

    resp = jsonify(message="Logged out everywhere", revoked_sessions=count)
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200
