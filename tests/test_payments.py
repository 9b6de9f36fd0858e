import pytest
import stripe

from booking.promo_codes import DiscountType
from conftest import GUEST, make_booking, make_promo
from models import db
from models.audit_log import AuditLog
from models.payment import Payment


@pytest.fixture
def fake_stripe(monkeypatch):
    calls = {"create": [], "retrieve": [], "refund": []}

    def create(**kwargs):
        calls["create"].append(kwargs)
        n = len(calls["create"])
        return {"id": f"pi_{n}", "client_secret": f"pi_{n}_secret", "amount": kwargs["amount"], "currency": kwargs["currency"]}

    def retrieve(intent_id):
        calls["retrieve"].append(intent_id)
        return {"id": intent_id, "client_secret": f"{intent_id}_secret", "amount": 5000, "currency": "gbp"}

    def refund(**kwargs):
        calls["refund"].append(kwargs)
        return {"id": "re_1"}

    monkeypatch.setattr(stripe.PaymentIntent, "create", create)
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", retrieve)
    monkeypatch.setattr(stripe.Refund, "create", refund)
    return calls


@pytest.fixture
def webhook_event(monkeypatch):
    """Makes construct_event hand back whatever event the test sets."""
    holder = {}

    def construct_event(payload, sig_header, secret):
        if sig_header != "good":
            raise stripe.SignatureVerificationError("No signatures found", sig_header)
        return holder["event"]

    monkeypatch.setattr(stripe.Webhook, "construct_event", construct_event)

    def send(client, event_type, intent):
        holder["event"] = {"type": event_type, "data": {"object": intent}}
        return client.post("/webhooks/stripe", data=b"{}", headers={"Stripe-Signature": "good"})

    return send


class TestPaymentIntent:
    def test_creates_intent(self, client, fake_stripe):
        booking = make_booking()
        resp = client.post("/payments/intent", json={"booking_reference": booking.booking_reference, "email": GUEST})
        assert resp.status_code == 200
        assert resp.get_json() == {"client_secret": "pi_1_secret", "amount": 5000, "currency": "gbp"}

        payment = Payment.query.one()
        assert payment.status == "INIT"
        assert payment.amount == 5000
        assert payment.stripe_payment_intent_id == "pi_1"
        metadata = fake_stripe["create"][0]["metadata"]
        assert metadata["booking_reference"] == booking.booking_reference
        assert metadata["payment_id"] == str(payment.id)
        assert AuditLog.query.filter_by(action="PAYMENT_INTENT_CREATED").count() == 1

    def test_reuses_open_intent(self, client, fake_stripe):
        booking = make_booking()
        payload = {"booking_reference": booking.booking_reference, "email": GUEST}
        client.post("/payments/intent", json=payload)
        resp = client.post("/payments/intent", json=payload)

        assert resp.status_code == 200
        assert len(fake_stripe["create"]) == 1
        assert fake_stripe["retrieve"] == ["pi_1"]
        assert Payment.query.count() == 1

    def test_promo_in_metadata(self, client, fake_stripe):
        promo = make_promo(code="SAVE10")
        booking = make_booking(final_amount=4500, promo=promo)
        client.post("/payments/intent", json={"booking_reference": booking.booking_reference, "email": GUEST})

        metadata = fake_stripe["create"][0]["metadata"]
        assert metadata["promo_code"] == "SAVE10"
        assert metadata["discount_amount"] == "500"
        assert fake_stripe["create"][0]["amount"] == 4500

    def test_fully_discounted_booking_is_confirmed(self, client, fake_stripe):
        promo = make_promo(code="FREE", discount_type=DiscountType.FIXED_AMOUNT, discount_value=100000)
        booking = make_booking(final_amount=0, promo=promo)

        resp = client.post("/payments/intent", json={"booking_reference": booking.booking_reference, "email": GUEST})
        assert resp.status_code == 200
        assert resp.get_json() == {"confirmed": True, "amount": 0}
        assert booking.status == "CONFIRMED"
        assert promo.usage_count == 1
        assert fake_stripe["create"] == []

    def test_rejects_bad_requests(self, client, fake_stripe):
        booking = make_booking()
        ref = booking.booking_reference

        assert client.post("/payments/intent", json={"booking_reference": "bad"}).status_code == 400
        assert client.post("/payments/intent", json={"booking_reference": "NCB-20300101-AAAAAA"}).status_code == 404
        assert client.post("/payments/intent", json={"booking_reference": ref}).status_code == 404
        assert client.post("/payments/intent", json={"booking_reference": ref, "email": "x@example.com"}).status_code == 404

    def test_rejects_non_pending(self, client, fake_stripe):
        booking = make_booking(status="CANCELLED")
        resp = client.post("/payments/intent", json={"booking_reference": booking.booking_reference, "email": GUEST})
        assert resp.status_code == 400

    def test_stripe_error(self, client, monkeypatch):
        def boom(**kwargs):
            raise stripe.APIConnectionError("network down")

        monkeypatch.setattr(stripe.PaymentIntent, "create", boom)
        booking = make_booking()

        resp = client.post("/payments/intent", json={"booking_reference": booking.booking_reference, "email": GUEST})
        assert resp.status_code == 502
        assert Payment.query.count() == 0


class TestWebhook:
    def _pay(self, client, booking):
        client.post("/payments/intent", json={"booking_reference": booking.booking_reference, "email": GUEST})
        return Payment.query.filter_by(booking_id=booking.id).one()

    def test_bad_signature(self, client, webhook_event):
        resp = client.post("/webhooks/stripe", data=b"{}", headers={"Stripe-Signature": "forged"})
        assert resp.status_code == 400

    def test_success_confirms_booking(self, client, fake_stripe, webhook_event):
        promo = make_promo(code="SAVE10")
        booking = make_booking(final_amount=4500, promo=promo)
        payment = self._pay(client, booking)

        resp = webhook_event(client, "payment_intent.succeeded", {"id": payment.stripe_payment_intent_id, "metadata": {}})
        assert resp.status_code == 200

        assert booking.status == "CONFIRMED"
        assert payment.status == "PAID"
        assert payment.paid_at is not None
        assert promo.usage_count == 1
        assert AuditLog.query.filter_by(action="BOOKING_CONFIRMED").count() == 1

    def test_replayed_success_counts_promo_once(self, client, fake_stripe, webhook_event):
        promo = make_promo(code="SAVE10")
        booking = make_booking(final_amount=4500, promo=promo)
        payment = self._pay(client, booking)
        intent = {"id": payment.stripe_payment_intent_id, "metadata": {}}

        webhook_event(client, "payment_intent.succeeded", intent)
        webhook_event(client, "payment_intent.succeeded", intent)
        assert promo.usage_count == 1

    def test_success_found_by_metadata(self, client, fake_stripe, webhook_event):
        booking = make_booking()
        payment = self._pay(client, booking)

        webhook_event(client, "payment_intent.succeeded", {"id": "pi_other", "metadata": {"payment_id": str(payment.id)}})
        assert booking.status == "CONFIRMED"

    def test_success_for_cancelled_booking(self, client, fake_stripe, webhook_event):
        booking = make_booking()
        payment = self._pay(client, booking)
        booking.status = "CANCELLED"
        db.session.commit()

        webhook_event(client, "payment_intent.succeeded", {"id": payment.stripe_payment_intent_id, "metadata": {}})
        assert booking.status == "CANCELLED"
        assert payment.status == "PAID"

    def test_failure_marks_payment(self, client, fake_stripe, webhook_event):
        booking = make_booking()
        payment = self._pay(client, booking)

        webhook_event(client, "payment_intent.payment_failed", {"id": payment.stripe_payment_intent_id, "metadata": {}})
        assert payment.status == "FAILED"
        assert booking.status == "PENDING"
        assert AuditLog.query.filter_by(action="PAYMENT_FAILED").count() == 1

    def test_unknown_intent_and_other_events(self, client, webhook_event):
        assert webhook_event(client, "payment_intent.succeeded", {"id": "pi_ghost", "metadata": {}}).status_code == 200
        assert webhook_event(client, "charge.refunded", {"id": "ch_1"}).status_code == 200
