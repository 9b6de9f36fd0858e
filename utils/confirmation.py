import logging
from datetime import datetime

from models import db
from models.booking import Booking
from models.promo_code import PromoCode
from utils.audit import log_event
from utils.availability import take_stock
from utils.emailer import send_booking_confirmation

logger = logging.getLogger(__name__)


def confirm_booking(booking, payment=None):
    """
    Mark a PENDING booking as CONFIRMED, count the promo redemption and take
    the booked items out of per-date stock.

    Safe to call twice, including from two concurrent webhook deliveries:
    the status flip is a conditional UPDATE, and only the caller whose
    update matched the PENDING row goes on to redeem the promo code.
    """
    claimed = (
        Booking.query
        .filter_by(id=booking.id, status="PENDING")
        .update({Booking.status: "CONFIRMED"}, synchronize_session=False)
    )
    # reload status from the row either way; the instance may be stale
    db.session.expire(booking, ["status"])
    if claimed != 1:
        return False

    if payment is not None:
        payment.status = "PAID"
        payment.paid_at = datetime.utcnow()

    if booking.promo_code_id:
        # increment in SQL so concurrent confirmations don't lose counts
        PromoCode.query.filter_by(id=booking.promo_code_id).update(
            {PromoCode.usage_count: PromoCode.usage_count + 1},
            synchronize_session=False,
        )
    take_stock(booking)

    db.session.commit()
    log_event(
        "BOOKING_CONFIRMED",
        user_id=booking.user_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"reference": booking.booking_reference, "payment_id": payment.id if payment else None},
    )

    sent, error = send_booking_confirmation(booking)
    if not sent:
        logger.info("Confirmation email for %s not sent: %s", booking.booking_reference, error)
    return True
