import json
from flask import request
from models import db
from models.audit_log import AuditLog


def client_ip():
    # first hop of X-Forwarded-For is the original client behind the proxy
    forwarded = request.headers.get("X-Forwarded-For", "")
    return forwarded.split(",")[0].strip() or request.remote_addr


def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None):
    """
    Append an audit row for a security or booking event. Metadata is stored as
    JSON; dates and Decimals are stringified.
    """
    db.session.add(AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:255] or None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    ))
    db.session.commit()
