from functools import wraps
from flask import g, jsonify
from security.session import get_session_from_request
from models import db
from models.user import User

def load_current_user():
    sess = get_session_from_request()
    if not sess:
        g.user = None
        g.session = None
        return
    user = db.session.get(User, sess.user_id)
    if user is None or user.disabled:
        g.user = None
        g.session = None
        return
    g.session = sess
    g.user = user

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper

def verified_required(fn):
    """Customers must be verified by an admin before they can book; admins are exempt."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = getattr(g, "user", None)
        if user is None:
            return jsonify(error="Authentication required"), 401
        if not user.verified and not user.is_admin:
            return jsonify(error="Account is not verified yet. Wait for an admin to verify it."), 403
        return fn(*args, **kwargs)
    return wrapper
