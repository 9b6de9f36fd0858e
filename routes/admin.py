import logging
import math
from datetime import datetime, timezone

import stripe
from sqlalchemy.exc import IntegrityError
from flask import Blueprint, jsonify, g, request, current_app

from booking.dates import format_date_for_display, is_weekend_day, parse_cutoff_time
from booking.promo_codes import DiscountType, format_promo_code, is_promo_code_active
from models import db
from models.blackout_date import BlackoutDate
from models.booking import Booking
from models.catalog import Package, Extra, PackagePricing
from models.cutoff_time import DailyCutoffTime
from models.payment import Payment
from models.promo_code import PromoCode
from utils.auth_context import require_roles
from utils.audit import log_event
from utils.availability import STOCK_MODELS, stock_for
from utils.parsing import json_object, optional_text, parse_day, parse_instant

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

INVENTORY_MODELS = {"packages": Package, "extras": Extra}


def _promo_to_dict(p):
    return {
        "id": p.id,
        "code": p.code,
        "description": p.description,
        "discount_type": p.discount_type.value,
        "discount_value": p.discount_value,
        "min_purchase_amount": p.min_purchase_amount,
        "max_discount_amount": p.max_discount_amount,
        "usage_limit": p.usage_limit,
        "usage_count": p.usage_count,
        "valid_from": p.valid_from.isoformat() if p.valid_from else None,
        "valid_until": p.valid_until.isoformat() if p.valid_until else None,
        "is_active": p.is_active,
        "is_usable": is_promo_code_active(p),
    }


def _is_count(value) -> bool:
    """A non-negative JSON integer (bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _naive_utc(value: datetime) -> datetime:
    # columns hold naive UTC, like datetime.utcnow()
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ---------- Blackout dates ----------
@admin_bp.get("/blackout-dates")
@require_roles("ADMIN")
def list_blackout_dates():
    rows = BlackoutDate.query.order_by(BlackoutDate.date.asc()).all()
    return jsonify([
        {
            "id": b.id,
            "date": b.date.isoformat(),
            "reason": b.reason,
            "formatted_date": format_date_for_display(b.date, include_year=True),
        }
        for b in rows
    ]), 200


@admin_bp.post("/blackout-dates")
@require_roles("ADMIN")
def create_blackout_date():
    data = json_object()
    if not data.get("date"):
        return jsonify(error="date required"), 400
    try:
        day = parse_day(data["date"])
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400
    try:
        reason = optional_text(data, "reason", 255)
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    row = BlackoutDate(date=day, reason=reason, created_by=g.user.id)
    db.session.add(row)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Date is already blacked out"), 409

    log_event("BLACKOUT_CREATE", user_id=g.user.id, entity="blackout_date", entity_id=row.id, metadata={"date": day.isoformat()})
    return jsonify(id=row.id, date=day.isoformat(), reason=row.reason), 201


@admin_bp.delete("/blackout-dates/<int:blackout_id>")
@require_roles("ADMIN")
def delete_blackout_date(blackout_id: int):
    row = db.session.get(BlackoutDate, blackout_id)
    if not row:
        return jsonify(error="Blackout date not found"), 404

    day = row.date.isoformat()
    db.session.delete(row)
    db.session.commit()

    log_event("BLACKOUT_DELETE", user_id=g.user.id, entity="blackout_date", entity_id=blackout_id, metadata={"date": day})
    return jsonify(message="Blackout date removed"), 200


# ---------- Cutoff times ----------
@admin_bp.get("/cutoff-times")
@require_roles("ADMIN")
def list_cutoff_times():
    rows = DailyCutoffTime.query.order_by(DailyCutoffTime.day_of_week.asc()).all()
    return jsonify([
        {"day_of_week": c.day_of_week, "cutoff_time": c.cutoff_time, "is_active": c.is_active}
        for c in rows
    ]), 200


@admin_bp.put("/cutoff-times/<int:day_of_week>")
@require_roles("ADMIN")
def set_cutoff_time(day_of_week: int):
    if not 0 <= day_of_week <= 6:
        return jsonify(error="day_of_week must be 0 (Monday) to 6 (Sunday)"), 400

    data = json_object()
    try:
        cutoff = parse_cutoff_time(optional_text(data, "cutoff_time") or "")
    except ValueError:
        return jsonify(error="cutoff_time must be HH:mm (24-hour)"), 400

    row = DailyCutoffTime.query.filter_by(day_of_week=day_of_week).first()
    if not row:
        row = DailyCutoffTime(day_of_week=day_of_week)
        db.session.add(row)
    row.cutoff_time = cutoff.strftime("%H:%M")
    row.is_active = bool(data.get("is_active", True))
    db.session.commit()

    log_event("CUTOFF_UPDATE", user_id=g.user.id, entity="cutoff_time", entity_id=day_of_week, metadata={"cutoff_time": row.cutoff_time})
    return jsonify(day_of_week=day_of_week, cutoff_time=row.cutoff_time, is_active=row.is_active), 200


# ---------- Promo codes ----------
def _apply_promo_fields(promo, data):
    """Copies validated fields from `data` onto `promo`. Raises ValueError with a user-facing message."""
    if "discount_type" in data:
        try:
            promo.discount_type = DiscountType(str(data["discount_type"]).upper())
        except ValueError:
            raise ValueError("discount_type must be PERCENTAGE or FIXED_AMOUNT") from None

    if "discount_value" in data:
        value = data["discount_value"]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            raise ValueError("discount_value must be a non-negative number")
        promo.discount_value = value

    for field in ("usage_limit", "min_purchase_amount", "max_discount_amount"):
        if field in data:
            value = data[field]
            if value is not None and not _is_count(value):
                raise ValueError(f"{field} must be a non-negative integer or null")
            setattr(promo, field, value)

    for field in ("valid_from", "valid_until"):
        if field in data:
            value = data[field]
            try:
                setattr(promo, field, _naive_utc(parse_instant(value)) if value else None)
            except ValueError:
                raise ValueError(f"Invalid {field}") from None

    if promo.discount_type is DiscountType.PERCENTAGE and promo.discount_value > 100:
        raise ValueError("A percentage discount cannot exceed 100")

    if promo.valid_from and promo.valid_until and promo.valid_until < promo.valid_from:
        raise ValueError("valid_until must not be before valid_from")

    if "description" in data:
        promo.description = optional_text(data, "description", 255)
    if "is_active" in data:
        promo.is_active = bool(data["is_active"])


@admin_bp.get("/promo-codes")
@require_roles("ADMIN")
def list_promo_codes():
    rows = PromoCode.query.order_by(PromoCode.created_at.desc()).all()
    return jsonify([_promo_to_dict(p) for p in rows]), 200


@admin_bp.post("/promo-codes")
@require_roles("ADMIN")
def create_promo_code():
    data = json_object()
    code = data.get("code")
    code = format_promo_code(code) if isinstance(code, str) else ""
    if not code:
        return jsonify(error="code required"), 400
    if "discount_type" not in data or "discount_value" not in data:
        return jsonify(error="discount_type and discount_value are required"), 400

    promo = PromoCode(code=code, usage_count=0, is_active=True)
    try:
        _apply_promo_fields(promo, data)
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    db.session.add(promo)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Promo code already exists"), 409

    log_event("PROMO_CREATE", user_id=g.user.id, entity="promo_code", entity_id=promo.id, metadata={"code": code})
    return jsonify(_promo_to_dict(promo)), 201


@admin_bp.patch("/promo-codes/<int:promo_id>")
@require_roles("ADMIN")
def update_promo_code(promo_id: int):
    promo = db.session.get(PromoCode, promo_id)
    if not promo:
        return jsonify(error="Promo code not found"), 404

    data = json_object()
    data.pop("code", None)  # codes are immutable once issued
    try:
        _apply_promo_fields(promo, data)
    except ValueError as exc:
        db.session.rollback()
        return jsonify(error=str(exc)), 400

    db.session.commit()
    log_event("PROMO_UPDATE", user_id=g.user.id, entity="promo_code", entity_id=promo.id, metadata={"fields": sorted(data)})
    return jsonify(_promo_to_dict(promo)), 200


# ---------- Inventory ----------
@admin_bp.post("/<kind>")
@require_roles("ADMIN")
def create_inventory_item(kind: str):
    model = INVENTORY_MODELS.get(kind)
    if model is None:
        return jsonify(error="Not found"), 404

    data = json_object()
    try:
        name = optional_text(data, "name", 120)
        description = optional_text(data, "description")
    except ValueError as exc:
        return jsonify(error=str(exc)), 400
    if not name:
        return jsonify(error="name required"), 400
    price = data.get("price")
    if not _is_count(price):
        return jsonify(error="price must be a non-negative integer (pence)"), 400

    item = model(name=name, description=description, price=price)
    if model is Package and data.get("max_guests") is not None:
        if not _is_count(data["max_guests"]) or data["max_guests"] < 1:
            return jsonify(error="max_guests must be a positive integer or null"), 400
        item.max_guests = data["max_guests"]

    db.session.add(item)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error=f"A {kind[:-1]} with that name already exists"), 409

    log_event(f"{kind[:-1].upper()}_CREATE", user_id=g.user.id, entity=kind[:-1], entity_id=item.id)
    return jsonify(item.to_dict()), 201


@admin_bp.post("/<kind>/<int:item_id>/deactivate")
@require_roles("ADMIN")
def deactivate_inventory_item(kind: str, item_id: int):
    model = INVENTORY_MODELS.get(kind)
    item = db.session.get(model, item_id) if model else None
    if not item:
        return jsonify(error="Not found"), 404

    item.is_active = False
    db.session.commit()

    log_event(f"{kind[:-1].upper()}_DEACTIVATE", user_id=g.user.id, entity=kind[:-1], entity_id=item_id)
    return jsonify(message="Deactivated"), 200


@admin_bp.put("/packages/<int:package_id>/pricing/<day>")
@require_roles("ADMIN")
def set_package_price(package_id: int, day: str):
    package = db.session.get(Package, package_id)
    if not package:
        return jsonify(error="Not found"), 404
    try:
        day = parse_day(day)
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400
    if not is_weekend_day(day):
        return jsonify(error="Prices can only be set for Fridays and Saturdays"), 400

    price = json_object().get("price")
    if not _is_count(price):
        return jsonify(error="price must be a non-negative integer (pence)"), 400

    row = PackagePricing.query.filter_by(package_id=package_id, date=day).first()
    if not row:
        row = PackagePricing(package_id=package_id, date=day)
        db.session.add(row)
    row.price = price
    db.session.commit()

    log_event("PACKAGE_PRICE_SET", user_id=g.user.id, entity="package", entity_id=package_id, metadata={"date": day.isoformat(), "price": price})
    return jsonify(package_id=package_id, date=day.isoformat(), price=price), 200


@admin_bp.delete("/packages/<int:package_id>/pricing/<day>")
@require_roles("ADMIN")
def clear_package_price(package_id: int, day: str):
    try:
        day = parse_day(day)
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    row = PackagePricing.query.filter_by(package_id=package_id, date=day).first()
    if not row:
        return jsonify(error="No price override for that date"), 404
    db.session.delete(row)
    db.session.commit()

    log_event("PACKAGE_PRICE_CLEAR", user_id=g.user.id, entity="package", entity_id=package_id, metadata={"date": day.isoformat()})
    return jsonify(message="Price override removed"), 200


@admin_bp.put("/<kind>/<int:item_id>/availability/<day>")
@require_roles("ADMIN")
def set_item_stock(kind: str, item_id: int, day: str):
    """
    Set how many of a package (guest places) or extra can be sold on a date.
    `available_quantity` defaults to `total_quantity` for a new row.
    """
    model = INVENTORY_MODELS.get(kind)
    item = db.session.get(model, item_id) if model else None
    if not item:
        return jsonify(error="Not found"), 404
    try:
        day = parse_day(day)
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    data = json_object()
    for field in ("total_quantity", "available_quantity"):
        if field in data and not _is_count(data[field]):
            return jsonify(error=f"{field} must be a non-negative integer"), 400

    row = stock_for(item, day)
    if row is None:
        if "total_quantity" not in data:
            return jsonify(error="total_quantity required"), 400
        stock_model = STOCK_MODELS[model]
        row = stock_model(
            date=day, total_quantity=0, available_quantity=data["total_quantity"], is_available=True,
            **{stock_model.owner_key: item.id},
        )
        db.session.add(row)

    if "total_quantity" in data:
        row.total_quantity = data["total_quantity"]
    if "available_quantity" in data:
        row.available_quantity = data["available_quantity"]
    if row.available_quantity > row.total_quantity:
        db.session.rollback()
        return jsonify(error="available_quantity cannot exceed total_quantity"), 400
    row.is_available = bool(data.get("is_available", row.is_available))
    db.session.commit()

    log_event(f"{kind[:-1].upper()}_STOCK_SET", user_id=g.user.id, entity=kind[:-1], entity_id=item_id, metadata=row.to_dict())
    return jsonify(row.to_dict()), 200


# ---------- Bookings ----------
@admin_bp.get("/bookings")
@require_roles("ADMIN")
def list_bookings():
    q = Booking.query
    status = request.args.get("status")
    if status:
        q = q.filter_by(status=status)

    if request.args.get("event_date"):
        try:
            q = q.filter_by(event_date=parse_day(request.args["event_date"]))
        except ValueError:
            return jsonify(error="Invalid event_date. Use YYYY-MM-DD"), 400

    rows = q.order_by(Booking.created_at.desc()).limit(200).all()
    out = []
    for b in rows:
        row = b.to_dict()
        row["user_id"] = b.user_id
        row["guest_email"] = b.guest_email
        row["guest_name"] = b.guest_name
        out.append(row)
    return jsonify(out), 200


@admin_bp.post("/bookings/<reference>/cancel")
@require_roles("ADMIN")
def cancel_booking(reference: str):
    booking = Booking.query.filter_by(booking_reference=reference).first()
    if not booking:
        return jsonify(error="Booking not found"), 404
    if booking.status != "PENDING":
        return jsonify(error="Only unpaid bookings can be cancelled; refund paid ones"), 400

    booking.status = "CANCELLED"
    booking.cancelled_at = datetime.utcnow()
    db.session.commit()

    log_event("ADMIN_BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(message="Cancelled by admin"), 200


@admin_bp.post("/bookings/<reference>/refund")
@require_roles("ADMIN")
def refund_booking(reference: str):
    booking = Booking.query.filter_by(booking_reference=reference).first()
    if not booking:
        return jsonify(error="Booking not found"), 404
    if booking.status != "CONFIRMED":
        return jsonify(error="Only confirmed bookings can be refunded"), 400

    payment = Payment.query.filter_by(booking_id=booking.id, status="PAID").first()
    if payment and payment.stripe_payment_intent_id:
        stripe.api_key = current_app.config.get("STRIPE_SECRET_KEY")
        try:
            refund = stripe.Refund.create(payment_intent=payment.stripe_payment_intent_id)
        except stripe.StripeError as exc:
            logger.error("Stripe refund failed for %s: %s", reference, exc)
            return jsonify(error="Payment provider error"), 502
        payment.status = "REFUNDED"
        payment.stripe_refund_id = refund["id"]
        payment.refunded_at = datetime.utcnow()

    booking.status = "REFUNDED"
    booking.cancelled_at = datetime.utcnow()
    db.session.commit()

    log_event(
        "ADMIN_BOOKING_REFUND",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking.id,
        metadata={"amount": booking.final_amount, "payment_id": payment.id if payment else None},
    )
    return jsonify(message="Refunded", status=booking.status), 200
