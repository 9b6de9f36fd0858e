import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session
from utils.audit import client_ip


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _is_live(sess, now) -> bool:
    if sess.expires_at <= now:
        return False
    idle = timedelta(seconds=current_app.config.get("IDLE_TIMEOUT_SECONDS", 1800))
    return (sess.last_seen_at or sess.created_at) + idle > now


def create_session(user_id: int) -> str:
    """
    Store a new session for `user_id` and return the raw cookie token.
    Only its SHA-256 is persisted.
    """
    raw_token = secrets.token_urlsafe(32)
    now = datetime.utcnow()
    db.session.add(Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        created_at=now,
        last_seen_at=now,
        expires_at=now + timedelta(seconds=current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)),
        ip=client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    ))
    db.session.commit()
    return raw_token


def get_session_from_request():
    raw_token = request.cookies.get(current_app.config.get("AUTH_COOKIE_NAME", "venue_session"))
    if not raw_token:
        return None

    now = datetime.utcnow()
    sess = Session.query.filter_by(token_hash=_hash_token(raw_token), revoked=False).first()
    if sess is None or not _is_live(sess, now):
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess


def revoke_session(raw_token: str) -> bool:
    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first() if raw_token else None
    if sess is None:
        return False
    sess.revoked = True
    db.session.commit()
    return True


def revoke_all_sessions(user_id: int) -> int:
    """Revoke every live session of a user; returns how many were revoked."""
    count = Session.query.filter_by(user_id=user_id, revoked=False).update(
        {Session.revoked: True}, synchronize_session=False
    )
    db.session.commit()
    return count
