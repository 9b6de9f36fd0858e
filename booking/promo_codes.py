"""
Promo code discount and eligibility rules.

Records are read by attribute, so both the SQLAlchemy PromoCode model and a
plain PromoCodeRecord work. Monetary values are unit-agnostic; the web layer
passes pence throughout.
"""
import enum
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

NOT_FOUND = "Invalid promo code"
NOT_ACTIVE = "Promo code is not active"
NOT_YET_VALID = "Promo code is not yet valid"
EXPIRED = "Promo code has expired"
USAGE_LIMIT_REACHED = "Promo code usage limit reached"

_CENT = Decimal("0.01")


class DiscountType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


@dataclass
class PromoCodeRecord:
    code: str
    discount_type: DiscountType
    discount_value: float
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    min_purchase_amount: Optional[float] = None
    max_discount_amount: Optional[float] = None


@dataclass(frozen=True)
class DateValidity:
    is_valid: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class PromoValidation:
    is_valid: bool
    error: Optional[str] = None
    promo_code: object = None
    discount_amount: Optional[float] = None


def _as_utc(value):
    # naive datetimes are stored as UTC by the models
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return value


def _now():
    return datetime.now(timezone.utc)


def calculate_discount(subtotal, discount_type, discount_value) -> float:
    if subtotal <= 0 or discount_value < 0:
        return 0

    if DiscountType(discount_type) is DiscountType.PERCENTAGE:
        amount = Decimal(str(subtotal)) * Decimal(str(discount_value)) / 100
        return float(amount.quantize(_CENT, rounding=ROUND_HALF_UP))

    return min(discount_value, subtotal)


def check_usage_limit(usage_limit: Optional[int], usage_count: int) -> bool:
    if usage_limit is None:
        return True
    return usage_count < usage_limit


def check_date_validity(valid_from, valid_until, check_date=None) -> DateValidity:
    """Both bounds are inclusive; None means unbounded on that side."""
    now = _as_utc(check_date) if check_date is not None else _now()

    if valid_from is not None and now < _as_utc(valid_from):
        return DateValidity(False, NOT_YET_VALID)

    if valid_until is not None and now > _as_utc(valid_until):
        return DateValidity(False, EXPIRED)

    return DateValidity(True)


def format_promo_code(code: str) -> str:
    return code.strip().upper()


def is_promo_code_expired(valid_until, now=None) -> bool:
    if valid_until is None:
        return False
    now = _as_utc(now) if now is not None else _now()
    return now > _as_utc(valid_until)


def is_promo_code_active(promo_code, now=None) -> bool:
    if not promo_code.is_active:
        return False

    if not check_date_validity(promo_code.valid_from, promo_code.valid_until, now).is_valid:
        return False

    return check_usage_limit(promo_code.usage_limit, promo_code.usage_count)


def validate_promo_code(promo_code, subtotal, booking_date=None, format_amount=None) -> PromoValidation:
    """
    Run the eligibility checks in order and stop at the first failure.

    The order matters to callers: a deactivated code always reports
    NOT_ACTIVE even when it is also expired or used up.

    `format_amount` renders the minimum purchase in the caller's currency
    for the error message; without it the bare number is shown.
    """
    if promo_code is None:
        return PromoValidation(False, NOT_FOUND)

    if not promo_code.is_active:
        return PromoValidation(False, NOT_ACTIVE)

    validity = check_date_validity(promo_code.valid_from, promo_code.valid_until, booking_date)
    if not validity.is_valid:
        return PromoValidation(False, validity.reason)

    if not check_usage_limit(promo_code.usage_limit, promo_code.usage_count):
        return PromoValidation(False, USAGE_LIMIT_REACHED)

    min_purchase = getattr(promo_code, "min_purchase_amount", None)
    if min_purchase is not None and subtotal < min_purchase:
        shown = format_amount(min_purchase) if format_amount else f"{min_purchase:g}"
        return PromoValidation(False, f"Minimum purchase of {shown} required")

    discount = calculate_discount(subtotal, promo_code.discount_type, promo_code.discount_value)

    max_discount = getattr(promo_code, "max_discount_amount", None)
    if max_discount is not None:
        discount = min(discount, max_discount)

    return PromoValidation(True, promo_code=promo_code, discount_amount=discount)
