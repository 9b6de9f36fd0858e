"""Booking reference generation and parsing."""
import random
import re
from datetime import date, datetime, timedelta, timezone

import pytest

from booking.errors import FormatError, InvalidDateError
from booking.reference import (
    generate_booking_reference,
    parse_booking_reference,
    validate_booking_reference,
)

REFERENCE_RE = re.compile(r"^NCB-\d{8}-[A-Z0-9]{6}$")


def test_generate_uses_given_utc_date():
    ref = generate_booking_reference(datetime(2025, 8, 15, 12, 30, tzinfo=timezone.utc))
    assert ref.startswith("NCB-20250815-")
    assert REFERENCE_RE.match(ref)


def test_generate_converts_aware_datetime_to_utc():
    # 00:30 on the 16th in UTC+2 is still the 15th in UTC
    plus_two = timezone(timedelta(hours=2))
    ref = generate_booking_reference(datetime(2025, 8, 16, 0, 30, tzinfo=plus_two))
    assert ref.startswith("NCB-20250815-")


def test_generate_accepts_plain_date():
    assert generate_booking_reference(date(2024, 2, 29)).startswith("NCB-20240229-")


def test_generate_defaults_to_today_utc():
    ref = generate_booking_reference()
    today = datetime.now(timezone.utc).strftime("%Y%m%d")
    assert ref.split("-")[1] == today


def test_generate_is_reproducible_with_seeded_rng():
    when = date(2025, 1, 1)
    first = generate_booking_reference(when, rng=random.Random(42))
    second = generate_booking_reference(when, rng=random.Random(42))
    assert first == second


def test_generate_rejects_non_dates():
    with pytest.raises(InvalidDateError):
        generate_booking_reference("2025-01-01")


def test_generated_references_vary():
    refs = {generate_booking_reference(date(2025, 1, 1)) for _ in range(50)}
    assert len(refs) > 1


def test_parse_round_trip():
    when = datetime(2025, 12, 31, 23, 59, tzinfo=timezone.utc)
    parsed = parse_booking_reference(generate_booking_reference(when))

    assert parsed.is_valid is True
    assert parsed.prefix == "NCB"
    assert parsed.date_component == "20251231"
    assert parsed.parsed_date == datetime(2025, 12, 31, tzinfo=timezone.utc)
    assert len(parsed.suffix) == 6


def test_parse_returns_segments():
    parsed = parse_booking_reference("NCB-20250101-AB12CD")
    assert parsed.suffix == "AB12CD"
    assert parsed.parsed_date.tzinfo == timezone.utc
    assert parsed.parsed_date.hour == 0


@pytest.mark.parametrize(
    "reference",
    [
        "",
        "NCB-20250101",
        "NCB-20250101-ABC123-X",
        "ABC-20250101-ABC123",
        "ncb-20250101-ABC123",
        "NCB-2025011-ABC123",
        "NCB-2025010A-ABC123",
        "NCB-20250101-abc123",
        "NCB-20250101-ABC12",
        "NCB-20250101-ABC1234",
        "NCB-20250101-ABC_23",
    ],
)
def test_parse_rejects_malformed(reference):
    with pytest.raises(FormatError):
        parse_booking_reference(reference)


def test_parse_rejects_non_ascii_digits():
    # Arabic-Indic digits match \d but are not ASCII
    with pytest.raises(FormatError):
        parse_booking_reference("NCB-٢٠٢٥٠١٠١-ABC123")


def test_parse_rejects_non_string():
    with pytest.raises(FormatError):
        parse_booking_reference(None)


@pytest.mark.parametrize(
    "reference",
    ["NCB-20250230-ABC123", "NCB-20250132-ABC123", "NCB-20251301-ABC123", "NCB-20230229-ABC123", "NCB-00000101-ABC123"],
)
def test_parse_rejects_impossible_dates(reference):
    with pytest.raises(InvalidDateError):
        parse_booking_reference(reference)


def test_parse_accepts_leap_day():
    assert parse_booking_reference("NCB-20240229-ZZZ999").date_component == "20240229"


def test_format_errors_have_distinct_messages():
    messages = set()
    for reference in ["", "A-B", "XXX-20250101-ABC123", "NCB-2025-ABC123", "NCB-20250101-abc"]:
        with pytest.raises(FormatError) as exc_info:
            parse_booking_reference(reference)
        messages.add(str(exc_info.value))
    assert len(messages) == 5


@pytest.mark.parametrize("value", [None, "", "   ", "\t\n", 123, "NCB-20250230-ABC123", "NCB-20250101-abc123"])
def test_validate_false(value):
    assert validate_booking_reference(value) is False


def test_validate_true():
    assert validate_booking_reference("NCB-20250101-ABC123") is True
    assert validate_booking_reference(generate_booking_reference()) is True
