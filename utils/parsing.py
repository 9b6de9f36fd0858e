from datetime import date, datetime

from flask import request


def json_object() -> dict:
    """The request's JSON body when it is an object, else an empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def optional_text(data: dict, key: str, max_length=None):
    """Stripped string or None. Raises ValueError when the value is not a string."""
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    value = value.strip()
    if max_length:
        value = value[:max_length]
    return value or None


def parse_day(value: str) -> date:
    # Expect YYYY-MM-DD
    if not isinstance(value, str):
        raise ValueError("Date must be a string")
    return date.fromisoformat(value.strip())


def parse_instant(value: str) -> datetime:
    # Accepts "2026-01-20", "2026-01-20T18:00:00" and offsets like "+00:00" or "Z"
    if not isinstance(value, str):
        raise ValueError("Datetime must be a string")
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def parse_bool(value) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes")
