"""
Booking references in the format NCB-YYYYMMDD-XXXXXX.

The date segment is the UTC calendar day the reference was minted and the
suffix is six characters drawn from A-Z0-9. References are not guaranteed to
be unique; the bookings table carries a unique constraint and callers retry on
conflict.
"""
import random
import re
import string
from dataclasses import dataclass
from datetime import date, datetime, timezone

from .errors import FormatError, InvalidDateError

PREFIX = "NCB"
SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
SUFFIX_LENGTH = 6

_DATE_RE = re.compile(r"[0-9]{8}")
_SUFFIX_RE = re.compile(r"[A-Z0-9]{6}")

_rng = random.Random()


@dataclass(frozen=True)
class ParsedReference:
    prefix: str
    date_component: str
    suffix: str
    parsed_date: datetime
    is_valid: bool = True


def _utc_day(when) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(when, datetime):
        if when.tzinfo is not None:
            when = when.astimezone(timezone.utc)
        return when.date()
    if isinstance(when, date):
        return when
    raise InvalidDateError("Invalid date provided")


def generate_booking_reference(when=None, rng=None) -> str:
    """
    Mint a new reference for `when` (defaults to now).

    `rng` is any object with a `choice` method; tests pass a seeded
    random.Random to get reproducible suffixes.
    """
    if when is None:
        when = datetime.now(timezone.utc)
    day = _utc_day(when)
    rng = rng or _rng

    suffix = "".join(rng.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{PREFIX}-{day:%Y%m%d}-{suffix}"


def parse_booking_reference(reference) -> ParsedReference:
    """
    Split a reference into its parts.

    Raises FormatError for structural problems and InvalidDateError when the
    date segment names a day that does not exist (e.g. 20250230).
    """
    if not reference or not isinstance(reference, str):
        raise FormatError("Booking reference is required")

    parts = reference.split("-")
    if len(parts) != 3:
        raise FormatError("Booking reference must have three segments")

    prefix, date_component, suffix = parts
    if prefix != PREFIX:
        raise FormatError(f"Booking reference must start with {PREFIX}")
    if not _DATE_RE.fullmatch(date_component):
        raise FormatError("Booking reference date must be 8 digits")
    if not _SUFFIX_RE.fullmatch(suffix):
        raise FormatError("Booking reference suffix must be 6 characters A-Z or 0-9")

    year = int(date_component[:4])
    month = int(date_component[4:6])
    day = int(date_component[6:])
    try:
        parsed = datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        raise InvalidDateError("Invalid date in booking reference") from None

    return ParsedReference(
        prefix=prefix,
        date_component=date_component,
        suffix=suffix,
        parsed_date=parsed,
    )


def validate_booking_reference(reference) -> bool:
    if not isinstance(reference, str) or not reference.strip():
        return False
    try:
        parse_booking_reference(reference)
    except (FormatError, InvalidDateError):
        return False
    return True
