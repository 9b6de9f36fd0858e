from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.csrf import issue_csrf_token, clear_csrf_token
from security.password import hash_password, verify_password, check_password_length, MIN_PASSWORD_LENGTH
from security.session import create_session, revoke_session, revoke_all_sessions
from utils.audit import log_event
from utils.auth_context import login_required
from utils.parsing import json_object


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

PROFILE_FIELDS = {"full_name": 120, "phone_number": 30}


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "venue_session")


def _clean_profile(data):
    """Trimmed profile fields present in `data`; blank strings become None."""
    out = {}
    for field, max_len in PROFILE_FIELDS.items():
        if field in data:
            value = data[field]
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{field} must be a string")
            out[field] = (value or "").strip()[:max_len] or None
    return out


def _user_payload(user):
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "phone_number": user.phone_number,
        "roles": [r.name for r in user.roles],
    }


def _start_session(user):
    # one live session per account
    revoked = revoke_all_sessions(user.id)
    resp = jsonify(message="Login OK", user=_user_payload(user))
    resp.set_cookie(
        _cookie_name(),
        create_session(user.id),
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    return issue_csrf_token(resp), revoked


@auth_bp.post("/register")
def register():
    data = json_object()
    email = str(data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    if not check_password_length(password):
        return jsonify(error=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"), 400
    try:
        profile = _clean_profile(data)
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(email=email, password_hash=hash_password(password), **profile)
    customer_role = Role.query.filter_by(name="CUSTOMER").first()
    if customer_role:
        user.roles.append(customer_role)
    db.session.add(user)
    db.session.commit()

    log_event("REGISTER_SUCCESS", user_id=user.id)
    return jsonify(message="Registered successfully", id=user.id), 201


@auth_bp.post("/login")
def login():
    data = json_object()
    email = str(data.get("email") or "").strip().lower()

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(data.get("password") or "", user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    resp, revoked = _start_session(user)
    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked})
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(_user_payload(g.user)), 200


@auth_bp.patch("/me")
@login_required
def update_me():
    try:
        profile = _clean_profile(json_object())
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    for field, value in profile.items():
        setattr(g.user, field, value)
    db.session.commit()

    log_event("PROFILE_UPDATE", user_id=g.user.id, metadata={"fields": sorted(profile)})
    return jsonify(_user_payload(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(request.cookies.get(_cookie_name()))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(_cookie_name(), path="/")
    return clear_csrf_token(resp), 200
