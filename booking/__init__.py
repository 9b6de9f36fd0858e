from .errors import BookingError, FormatError, InvalidDateError, InvalidTimeError
from .reference import (
    generate_booking_reference,
    parse_booking_reference,
    validate_booking_reference,
    ParsedReference,
)
from .promo_codes import (
    DiscountType,
    PromoValidation,
    calculate_discount,
    check_date_validity,
    check_usage_limit,
    format_promo_code,
    is_promo_code_active,
    is_promo_code_expired,
    validate_promo_code,
)
from .dates import (
    UK_TIMEZONE,
    filter_blackout_dates,
    format_date_for_display,
    format_time_for_display,
    get_next_fridays_and_saturdays,
    is_bookable_date,
    is_date_available,
    is_past_cutoff_time,
)
