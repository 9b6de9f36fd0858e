from datetime import date, datetime, timedelta, timezone

import pytest

from booking.promo_codes import (
    EXPIRED,
    NOT_ACTIVE,
    NOT_FOUND,
    NOT_YET_VALID,
    USAGE_LIMIT_REACHED,
    DiscountType,
    PromoCodeRecord,
    calculate_discount,
    check_date_validity,
    check_usage_limit,
    format_promo_code,
    is_promo_code_active,
    is_promo_code_expired,
    validate_promo_code,
)

JAN_1 = datetime(2025, 1, 1, tzinfo=timezone.utc)
DEC_31 = datetime(2025, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
MID_YEAR = datetime(2025, 6, 15, tzinfo=timezone.utc)


def _promo(**overrides):
    fields = dict(code="SUMMER10", discount_type=DiscountType.PERCENTAGE, discount_value=10)
    fields.update(overrides)
    return PromoCodeRecord(**fields)


class TestCalculateDiscount:
    def test_percentage(self):
        assert calculate_discount(100, DiscountType.PERCENTAGE, 10) == 10

    def test_percentage_rounds_half_up_to_cents(self):
        assert calculate_discount(99.99, DiscountType.PERCENTAGE, 15) == 15.0
        assert calculate_discount(10.05, DiscountType.PERCENTAGE, 50) == 5.03

    def test_fractional_percentage_rounds_to_cents(self):
        assert calculate_discount(99.99, DiscountType.PERCENTAGE, 33.333) == 33.33

    def test_percentage_accepts_string_type(self):
        assert calculate_discount(200, "PERCENTAGE", 25) == 50

    def test_percentage_over_hundred_is_not_capped(self):
        assert calculate_discount(100, DiscountType.PERCENTAGE, 150) == 150

    def test_fixed_amount(self):
        assert calculate_discount(100, DiscountType.FIXED_AMOUNT, 20) == 20

    def test_fixed_amount_capped_at_subtotal(self):
        assert calculate_discount(50, DiscountType.FIXED_AMOUNT, 100) == 50

    @pytest.mark.parametrize("subtotal", [0, -10])
    def test_non_positive_subtotal(self, subtotal):
        assert calculate_discount(subtotal, DiscountType.PERCENTAGE, 10) == 0
        assert calculate_discount(subtotal, DiscountType.FIXED_AMOUNT, 10) == 0

    def test_negative_value(self):
        assert calculate_discount(100, DiscountType.FIXED_AMOUNT, -5) == 0
        assert calculate_discount(100, DiscountType.PERCENTAGE, -5) == 0

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            calculate_discount(100, "BOGUS", 10)


class TestUsageLimit:
    def test_unlimited(self):
        assert check_usage_limit(None, 10_000) is True

    def test_below_limit(self):
        assert check_usage_limit(100, 99) is True

    def test_at_limit(self):
        assert check_usage_limit(100, 100) is False

    def test_zero_limit(self):
        assert check_usage_limit(0, 0) is False


class TestDateValidity:
    def test_inside_window(self):
        result = check_date_validity(JAN_1, DEC_31, MID_YEAR)
        assert result.is_valid is True
        assert result.reason is None

    def test_before_window(self):
        result = check_date_validity(JAN_1, DEC_31, datetime(2024, 12, 31, tzinfo=timezone.utc))
        assert result.is_valid is False
        assert result.reason == NOT_YET_VALID

    def test_after_window(self):
        result = check_date_validity(JAN_1, DEC_31, datetime(2026, 1, 1, tzinfo=timezone.utc))
        assert result.is_valid is False
        assert result.reason == EXPIRED

    def test_bounds_are_inclusive(self):
        assert check_date_validity(JAN_1, DEC_31, JAN_1).is_valid is True
        assert check_date_validity(JAN_1, DEC_31, DEC_31).is_valid is True

    def test_unbounded(self):
        assert check_date_validity(None, None, MID_YEAR).is_valid is True
        assert check_date_validity(None, DEC_31, datetime(2000, 1, 1, tzinfo=timezone.utc)).is_valid is True

    def test_naive_bounds_are_utc(self):
        assert check_date_validity(datetime(2025, 1, 1), None, JAN_1).is_valid is True
        assert check_date_validity(None, datetime(2024, 12, 31, 23, 59), JAN_1).reason == EXPIRED

    def test_plain_check_date(self):
        assert check_date_validity(JAN_1, DEC_31, date(2025, 6, 1)).is_valid is True

    def test_defaults_to_now(self):
        past = datetime.now(timezone.utc) - timedelta(days=1)
        assert check_date_validity(None, past).reason == EXPIRED


def test_format_promo_code():
    assert format_promo_code("  summer10 ") == "SUMMER10"
    assert format_promo_code("") == ""


def test_is_promo_code_expired():
    assert is_promo_code_expired(None) is False
    assert is_promo_code_expired(JAN_1, now=MID_YEAR) is True
    assert is_promo_code_expired(DEC_31, now=MID_YEAR) is False
    assert is_promo_code_expired(datetime.now(timezone.utc) + timedelta(days=1)) is False


class TestIsActive:
    def test_active(self):
        assert is_promo_code_active(_promo(valid_from=JAN_1, valid_until=DEC_31), now=MID_YEAR) is True

    def test_flag_off(self):
        assert is_promo_code_active(_promo(is_active=False), now=MID_YEAR) is False

    def test_out_of_window(self):
        assert is_promo_code_active(_promo(valid_until=JAN_1), now=MID_YEAR) is False

    def test_used_up(self):
        assert is_promo_code_active(_promo(usage_limit=5, usage_count=5), now=MID_YEAR) is False


class TestValidatePromoCode:
    def test_missing(self):
        result = validate_promo_code(None, 100)
        assert result.is_valid is False
        assert result.error == NOT_FOUND

    def test_valid_percentage(self):
        promo = _promo()
        result = validate_promo_code(promo, 100, MID_YEAR)
        assert result.is_valid is True
        assert result.error is None
        assert result.promo_code is promo
        assert result.discount_amount == 10

    def test_valid_fixed(self):
        result = validate_promo_code(_promo(discount_type=DiscountType.FIXED_AMOUNT, discount_value=25), 100)
        assert result.discount_amount == 25

    def test_inactive_wins_over_everything(self):
        promo = _promo(is_active=False, valid_until=JAN_1, usage_limit=1, usage_count=1)
        assert validate_promo_code(promo, 100, MID_YEAR).error == NOT_ACTIVE

    def test_date_checked_before_usage(self):
        promo = _promo(valid_until=JAN_1, usage_limit=1, usage_count=1)
        assert validate_promo_code(promo, 100, MID_YEAR).error == EXPIRED

    def test_not_yet_valid(self):
        promo = _promo(valid_from=DEC_31)
        assert validate_promo_code(promo, 100, MID_YEAR).error == NOT_YET_VALID

    def test_usage_limit(self):
        promo = _promo(usage_limit=3, usage_count=3)
        result = validate_promo_code(promo, 100, MID_YEAR)
        assert result.is_valid is False
        assert result.error == USAGE_LIMIT_REACHED
        assert result.discount_amount is None

    def test_minimum_purchase(self):
        promo = _promo(min_purchase_amount=5000)
        result = validate_promo_code(promo, 4999, MID_YEAR)
        assert result.is_valid is False
        assert result.error == "Minimum purchase of 5000 required"

    def test_minimum_purchase_message_uses_formatter(self):
        promo = _promo(min_purchase_amount=5000)
        result = validate_promo_code(promo, 4999, MID_YEAR, format_amount=lambda pence: f"£{pence / 100:.2f}")
        assert result.error == "Minimum purchase of £50.00 required"
        assert validate_promo_code(promo, 5000, MID_YEAR).is_valid is True

    def test_usage_checked_before_minimum_purchase(self):
        promo = _promo(usage_limit=1, usage_count=1, min_purchase_amount=5000)
        assert validate_promo_code(promo, 10, MID_YEAR).error == USAGE_LIMIT_REACHED

    def test_max_discount_cap(self):
        promo = _promo(discount_value=50, max_discount_amount=2000)
        assert validate_promo_code(promo, 10000, MID_YEAR).discount_amount == 2000
        assert validate_promo_code(promo, 2000, MID_YEAR).discount_amount == 1000

    def test_zero_subtotal_is_valid_with_no_discount(self):
        result = validate_promo_code(_promo(), 0, MID_YEAR)
        assert result.is_valid is True
        assert result.discount_amount == 0

    def test_objects_without_optional_fields(self):
        class Minimal:
            is_active = True
            valid_from = None
            valid_until = None
            usage_limit = None
            usage_count = 0
            discount_type = "FIXED_AMOUNT"
            discount_value = 5

        assert validate_promo_code(Minimal(), 100).discount_amount == 5
