"""
Event-date availability for the Friday/Saturday schedule.

Calendar days are compared in UK time. Aware datetimes are converted to
Europe/London before their day is taken; naive datetimes and plain dates are
taken as already being UK calendar values.
"""
import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterable, List
from zoneinfo import ZoneInfo

from .errors import InvalidDateError, InvalidTimeError

UK_TIMEZONE = "Europe/London"
UK_TZ = ZoneInfo(UK_TIMEZONE)

EVENT_WEEKDAYS = (calendar.FRIDAY, calendar.SATURDAY)


def _to_day(value) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UK_TZ)
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidDateError(f"Not a date: {value!r}")


def _uk_now(now=None) -> datetime:
    if now is None:
        return datetime.now(UK_TZ)
    if now.tzinfo is None:
        return now.replace(tzinfo=UK_TZ)
    return now.astimezone(UK_TZ)


def parse_cutoff_time(cutoff_time: str) -> time:
    try:
        hours, minutes = (int(part) for part in cutoff_time.split(":"))
        return time(hours, minutes)
    except (AttributeError, TypeError, ValueError):
        raise InvalidTimeError(f"Invalid cutoff time: {cutoff_time!r}") from None


def convert_to_uk_timezone(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        raise InvalidDateError("Cannot convert a naive datetime")
    return instant.astimezone(UK_TZ)


def get_day_of_week_name(day) -> str:
    return calendar.day_name[_to_day(day).weekday()]


def is_weekend_day(day) -> bool:
    """Friday or Saturday, the only days events run."""
    return _to_day(day).weekday() in EVENT_WEEKDAYS


def generate_date_range(start, end) -> List[date]:
    current, last = _to_day(start), _to_day(end)
    days = []
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def get_next_fridays_and_saturdays(start, end) -> List[date]:
    return [day for day in generate_date_range(start, end) if day.weekday() in EVENT_WEEKDAYS]


def is_past_cutoff_time(day, cutoff_time: str, now=None) -> bool:
    """
    Past days are always past cutoff and future days never are. Only today
    compares the clock against the cutoff.
    """
    cutoff = parse_cutoff_time(cutoff_time)
    day = _to_day(day)
    now = _uk_now(now)
    today = now.date()

    if day == today:
        return now >= datetime.combine(day, cutoff, tzinfo=UK_TZ)
    return day < today


def _blackout_days(blackout_dates: Iterable) -> set:
    # accepts plain dates or BlackoutDate rows
    return {_to_day(b if isinstance(b, date) else b.date) for b in blackout_dates}


def is_date_available(day, blackout_dates: Iterable, cutoff_time: str, now=None) -> bool:
    if _to_day(day) in _blackout_days(blackout_dates):
        return False
    return not is_past_cutoff_time(day, cutoff_time, now)


def is_bookable_date(day, blackout_dates: Iterable, cutoff_time: str, now=None) -> bool:
    return is_weekend_day(day) and is_date_available(day, blackout_dates, cutoff_time, now)


def filter_blackout_dates(dates: Iterable, blackout_dates: Iterable) -> list:
    blocked = _blackout_days(blackout_dates)
    return [d for d in dates if _to_day(d) not in blocked]


def _ordinal_suffix(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_date_for_display(day, include_year: bool = False) -> str:
    day = _to_day(day)
    text = f"{get_day_of_week_name(day)}, {day.day}{_ordinal_suffix(day.day)} {calendar.month_name[day.month]}"
    if include_year:
        text += f" {day.year:04d}"
    return text


def format_time_for_display(value: str) -> str:
    """24-hour "HH:mm" to "h:mm AM/PM". Anything unparseable is echoed back."""
    try:
        hours, minutes = (int(part) for part in value.split(":")[:2])
    except (AttributeError, TypeError, ValueError):
        return value

    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return value

    period = "PM" if hours >= 12 else "AM"
    display_hours = hours % 12 or 12
    return f"{display_hours}:{minutes:02d} {period}"
