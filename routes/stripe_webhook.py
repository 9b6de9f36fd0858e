import logging
from datetime import datetime

import stripe
from flask import Blueprint, request, jsonify, current_app

from models import db
from models.booking import Booking
from models.payment import Payment
from utils.audit import log_event
from utils.confirmation import confirm_booking

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")


def _find_payment(intent):
    payment = Payment.query.filter_by(stripe_payment_intent_id=intent["id"]).first()
    if payment:
        return payment
    payment_id = (intent.get("metadata") or {}).get("payment_id")
    return db.session.get(Payment, int(payment_id)) if payment_id else None


@webhook_bp.post("/stripe")
def stripe_webhook():
    endpoint_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not endpoint_secret:
        return jsonify(error="Webhook secret not configured"), 500

    try:
        event = stripe.Webhook.construct_event(
            request.data, request.headers.get("Stripe-Signature"), endpoint_secret
        )
    except (ValueError, stripe.SignatureVerificationError):
        return jsonify(error="Invalid webhook signature"), 400

    event_type = event["type"]
    if event_type not in ("payment_intent.succeeded", "payment_intent.payment_failed"):
        return jsonify(received=True), 200

    intent = event["data"]["object"]
    payment = _find_payment(intent)
    if not payment:
        logger.warning("Webhook %s for unknown payment intent %s", event_type, intent["id"])
        return jsonify(received=True), 200

    booking = db.session.get(Booking, payment.booking_id)

    if event_type == "payment_intent.succeeded":
        if payment.status != "PAID" and booking and not confirm_booking(booking, payment):
            # paid for a booking that was cancelled meanwhile; keep the money trail for a refund
            payment.status = "PAID"
            payment.paid_at = datetime.utcnow()
            db.session.commit()
            logger.warning("Payment %s succeeded for %s booking %s", payment.id, booking.status, booking.booking_reference)
    elif payment.status == "INIT":
        payment.status = "FAILED"
        db.session.commit()
        log_event(
            "PAYMENT_FAILED",
            entity="payment",
            entity_id=payment.id,
            metadata={"stripe_payment_intent_id": intent["id"], "booking_id": payment.booking_id},
        )

    return jsonify(received=True), 200
