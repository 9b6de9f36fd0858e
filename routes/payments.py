import logging

import stripe
from flask import Blueprint, jsonify, current_app, g

from booking.reference import validate_booking_reference
from models import db
from models.booking import Booking
from models.payment import Payment
from utils.auth_context import can_view_booking
from utils.audit import log_event
from utils.confirmation import confirm_booking
from utils.parsing import json_object

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


def _configure_stripe() -> bool:
    stripe.api_key = current_app.config.get("STRIPE_SECRET_KEY")
    return bool(stripe.api_key)


@payments_bp.post("/intent")
def create_payment_intent():
    data = json_object()
    reference = str(data.get("booking_reference") or "").strip()
    if not validate_booking_reference(reference):
        return jsonify(error="Invalid booking reference format"), 400

    booking = Booking.query.filter_by(booking_reference=reference).first()
    if not booking or not can_view_booking(booking, data.get("email")):
        return jsonify(error="Booking not found"), 404
    if booking.status != "PENDING":
        return jsonify(error="Booking is not awaiting payment"), 400

    # Fully discounted bookings have nothing to charge
    if booking.final_amount <= 0:
        confirm_booking(booking)
        return jsonify(confirmed=True, amount=0), 200

    if not _configure_stripe():
        return jsonify(error="Stripe secret key not configured"), 500

    user = getattr(g, "user", None)
    payment = (
        Payment.query
        .filter_by(booking_id=booking.id, status="INIT")
        .order_by(Payment.created_at.desc())
        .first()
    )

    try:
        if payment and payment.stripe_payment_intent_id:
            intent = stripe.PaymentIntent.retrieve(payment.stripe_payment_intent_id)
        else:
            currency = current_app.config.get("CURRENCY", "gbp")
            payment = Payment(booking_id=booking.id, amount=booking.final_amount, currency=currency)
            db.session.add(payment)
            db.session.flush()

            metadata = {
                "booking_id": str(booking.id),
                "booking_reference": booking.booking_reference,
                "payment_id": str(payment.id),
            }
            if booking.promo_code:
                metadata["promo_code"] = booking.promo_code.code
                metadata["discount_amount"] = str(booking.discount_amount)

            intent = stripe.PaymentIntent.create(
                amount=booking.final_amount,
                currency=currency,
                metadata=metadata,
            )
            payment.stripe_payment_intent_id = intent["id"]
            db.session.commit()
    except stripe.StripeError as exc:
        db.session.rollback()
        logger.error("Stripe PaymentIntent failed for %s: %s", booking.booking_reference, exc)
        return jsonify(error="Payment provider error"), 502

    log_event(
        "PAYMENT_INTENT_CREATED",
        user_id=user.id if user else None,
        entity="payment",
        entity_id=payment.id,
        metadata={"stripe_payment_intent_id": intent["id"], "reference": booking.booking_reference},
    )
    return jsonify(
        client_secret=intent["client_secret"],
        amount=intent["amount"],
        currency=intent["currency"],
    ), 200
