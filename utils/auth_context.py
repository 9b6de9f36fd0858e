from functools import wraps
from flask import g, jsonify
from security.session import get_session_from_request
from models import db
from models.user import User


def load_current_user():
    sess = get_session_from_request()
    g.session = sess
    g.user = db.session.get(User, sess.user_id) if sess else None


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper


def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        @login_required
        def wrapper(*args, **kwargs):
            if not any(g.user.has_role(name) for name in role_names):
                return jsonify(error="Forbidden"), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def can_view_booking(booking, email=None) -> bool:
    """
    Admins see everything and account holders see their own bookings. Guest
    bookings are looked up with the email they were made under.
    """
    user = getattr(g, "user", None)
    if user is not None and user.has_role("ADMIN"):
        return True
    if booking.user_id:
        return user is not None and booking.user_id == user.id
    return bool(email) and (booking.guest_email or "").lower() == email.strip().lower()
