import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from flask import Blueprint, request, jsonify, current_app, g

from booking.dates import (
    UK_TIMEZONE,
    UK_TZ,
    format_date_for_display,
    format_time_for_display,
    get_day_of_week_name,
    get_next_fridays_and_saturdays,
    is_date_available,
    is_past_cutoff_time,
    is_weekend_day,
)
from booking.promo_codes import format_promo_code, validate_promo_code
from booking.reference import generate_booking_reference, validate_booking_reference
from models import db
from models.blackout_date import BlackoutDate
from models.booking import Booking, BookingItem
from models.catalog import Package, Extra
from models.promo_code import PromoCode
from utils.audit import log_event
from utils.auth_context import can_view_booking, login_required
from utils.availability import (
    cutoff_time_for, load_blackouts, load_cutoff_map, package_price_for, stock_for,
)
from utils.money import format_pounds, whole_pence
from utils.parsing import json_object, parse_bool, parse_day

logger = logging.getLogger(__name__)

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")

MAX_RANGE_DAYS = 366
MAX_PAGE_SIZE = 500


def _uk_today():
    return datetime.now(UK_TZ).date()


def _text(data, key):
    value = data.get(key)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _is_id(value):
    return isinstance(value, int) and not isinstance(value, bool)


# ---------- PUBLIC: event calendar ----------
@booking_bp.get("/available-dates")
def available_dates():
    today = _uk_today()
    try:
        start = parse_day(request.args["start_date"]) if request.args.get("start_date") else today
    except ValueError:
        return jsonify(error="Invalid start_date. Use YYYY-MM-DD"), 400
    try:
        if request.args.get("end_date"):
            end = parse_day(request.args["end_date"])
        else:
            end = start + timedelta(days=current_app.config.get("DEFAULT_DATE_RANGE_DAYS", 90))
    except ValueError:
        return jsonify(error="Invalid end_date. Use YYYY-MM-DD"), 400

    if end < start:
        return jsonify(error="end_date must not be before start_date"), 400
    if (end - start).days > MAX_RANGE_DAYS:
        return jsonify(error=f"Date range cannot exceed {MAX_RANGE_DAYS} days"), 400

    include_blackouts = parse_bool(request.args.get("include_blackouts", "false"))

    blackout_reasons = {b.date: b.reason for b in load_blackouts(start, end)}
    cutoff_map = load_cutoff_map()
    now = datetime.now(UK_TZ)

    out = []
    for day in get_next_fridays_and_saturdays(start, end):
        is_blacked_out = day in blackout_reasons
        if is_blacked_out and not include_blackouts:
            continue

        cutoff = cutoff_time_for(day, cutoff_map)
        is_past_cutoff = is_past_cutoff_time(day, cutoff, now)
        out.append({
            "date": day.isoformat(),
            "day_of_week": get_day_of_week_name(day),
            "formatted_date": format_date_for_display(day),
            "cutoff_time": cutoff,
            "cutoff_time_display": format_time_for_display(cutoff),
            "is_blacked_out": is_blacked_out,
            "blackout_reason": blackout_reasons.get(day) if is_blacked_out else None,
            "is_past_cutoff": is_past_cutoff,
            "is_available": not is_blacked_out and not is_past_cutoff,
            "timezone": UK_TIMEZONE,
        })

    resp = jsonify(
        available_dates=out,
        timezone=UK_TIMEZONE,
        current_time_uk=now.strftime("%Y-%m-%d %H:%M:%S %Z"),
    )
    resp.headers["Cache-Control"] = "public, max-age=300"
    return resp, 200


@booking_bp.get("/blackout-dates")
def blackout_dates():
    limit = max(min(request.args.get("limit", 100, type=int), MAX_PAGE_SIZE), 0)
    offset = max(request.args.get("offset", 0, type=int), 0)
    include_past = parse_bool(request.args.get("include_past", "false"))

    q = BlackoutDate.query
    start = end = None
    try:
        if request.args.get("start_date"):
            start = parse_day(request.args["start_date"])
        if request.args.get("end_date"):
            end = parse_day(request.args["end_date"])
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    if start and end and end < start:
        return jsonify(error="end_date must not be before start_date"), 400

    if start:
        q = q.filter(BlackoutDate.date >= start)
    elif not include_past:
        q = q.filter(BlackoutDate.date >= _uk_today())
    if end:
        q = q.filter(BlackoutDate.date <= end)

    total = q.count()
    rows = q.order_by(BlackoutDate.date.asc()).offset(offset).limit(limit).all()

    resp = jsonify(
        blackout_dates=[
            {
                "id": b.id,
                "date": b.date.isoformat(),
                "reason": b.reason,
                "formatted_date": format_date_for_display(b.date, include_year=True),
                "day_of_week": get_day_of_week_name(b.date),
            }
            for b in rows
        ],
        total=total,
        has_more=offset + len(rows) < total,
    )
    resp.headers["Cache-Control"] = "public, max-age=300"
    return resp, 200


# ---------- CUSTOMERS / GUESTS: create booking ----------
def _price_items(package, guest_count, extras_data, event_date):
    """
    Returns (item specs, subtotal) priced from stored inventory, never from
    the client. The package uses its price override for the event date when
    one exists.
    """
    unit_price = package_price_for(package, event_date)
    items = [{
        "item_type": "PACKAGE",
        "package_id": package.id,
        "name": package.name,
        "quantity": guest_count,
        "unit_price": unit_price,
        "total_price": unit_price * guest_count,
    }]
    stocked = [(package, guest_count)]

    for entry in extras_data:
        if not isinstance(entry, dict) or entry.get("extra_id") is None:
            raise ValueError("Each extra needs an extra_id")
        if not _is_id(entry["extra_id"]):
            raise ValueError("extra_id must be an integer")
        extra = db.session.get(Extra, entry["extra_id"])
        if not extra or not extra.is_active:
            raise LookupError(f"Extra {entry['extra_id']} not found")
        quantity = int(entry.get("quantity", 1))
        if quantity < 1:
            raise ValueError("Extra quantity must be at least 1")
        items.append({
            "item_type": "EXTRA",
            "extra_id": extra.id,
            "name": extra.name,
            "quantity": quantity,
            "unit_price": extra.price,
            "total_price": extra.price * quantity,
        })
        stocked.append((extra, quantity))

    return items, sum(i["total_price"] for i in items), stocked


def _first_out_of_stock(stocked, event_date):
    for item, quantity in stocked:
        stock = stock_for(item, event_date)
        if stock is not None and (not stock.is_available or stock.available_quantity < quantity):
            return item
    return None


def _save_with_new_reference(fields, items):
    """
    Insert the booking under a freshly generated reference. References are
    random, so a clash with an existing row is possible; the unique
    constraint catches it and we try again with a new one.
    """
    max_attempts = current_app.config.get("BOOKING_REFERENCE_MAX_ATTEMPTS", 5)
    for attempt in range(1, max_attempts + 1):
        booking = Booking(booking_reference=generate_booking_reference(), **fields)
        booking.items = [BookingItem(**item) for item in items]
        db.session.add(booking)
        try:
            db.session.commit()
            return booking
        except IntegrityError:
            db.session.rollback()
            logger.warning("Booking reference clash on attempt %d/%d", attempt, max_attempts)
    return None


@booking_bp.post("")
def create_booking():
    data = json_object()
    user = getattr(g, "user", None)

    guest_email = _text(data, "guest_email")
    guest_email = guest_email.lower() if guest_email else None
    guest_name = _text(data, "guest_name")
    if user is None and (not guest_email or not guest_name):
        return jsonify(error="guest_email and guest_name are required for guest bookings"), 400

    if not data.get("event_date"):
        return jsonify(error="event_date required"), 400
    try:
        event_date = parse_day(data["event_date"])
    except ValueError:
        return jsonify(error="Invalid event_date. Use YYYY-MM-DD"), 400

    if not is_weekend_day(event_date):
        return jsonify(error="Events run on Fridays and Saturdays only"), 400

    blackouts = BlackoutDate.query.filter_by(date=event_date).all()
    if not is_date_available(event_date, blackouts, cutoff_time_for(event_date)):
        return jsonify(error="Date is not available for booking"), 400

    package_id = data.get("package_id")
    if package_id is None:
        return jsonify(error="package_id required"), 400
    if not _is_id(package_id):
        return jsonify(error="package_id must be an integer"), 400
    package = db.session.get(Package, package_id)
    if not package or not package.is_active:
        return jsonify(error="Package not found"), 404

    try:
        guest_count = int(data.get("guest_count", 1))
    except (TypeError, ValueError, OverflowError):
        return jsonify(error="guest_count must be a number"), 400
    if guest_count < 1:
        return jsonify(error="guest_count must be at least 1"), 400
    if package.max_guests and guest_count > package.max_guests:
        return jsonify(error=f"This package allows at most {package.max_guests} guests"), 400

    extras_data = data.get("extras") or []
    if not isinstance(extras_data, list):
        return jsonify(error="extras must be a list"), 400
    try:
        items, subtotal, stocked = _price_items(package, guest_count, extras_data, event_date)
    except LookupError as exc:
        return jsonify(error=str(exc)), 404
    except (TypeError, ValueError, OverflowError) as exc:
        return jsonify(error=str(exc)), 400

    sold_out = _first_out_of_stock(stocked, event_date)
    if sold_out is not None:
        return jsonify(error=f"{sold_out.name} is not available in that quantity on this date"), 409

    promo = None
    discount = 0
    promo_code = _text(data, "promo_code")
    if promo_code:
        promo = PromoCode.query.filter_by(code=format_promo_code(promo_code)).first()
        result = validate_promo_code(promo, subtotal, format_amount=format_pounds)
        if not result.is_valid:
            return jsonify(error=result.error), 400
        discount = min(whole_pence(result.discount_amount), subtotal)

    booking = _save_with_new_reference(
        {
            "user_id": user.id if user else None,
            "guest_email": None if user else guest_email,
            "guest_name": None if user else guest_name,
            "event_date": event_date,
            "guest_count": guest_count,
            "status": "PENDING",
            "total_amount": subtotal,
            "discount_amount": discount,
            "final_amount": subtotal - discount,
            "promo_code_id": promo.id if promo else None,
            "customer_notes": _text(data, "customer_notes"),
        },
        items,
    )
    if booking is None:
        return jsonify(error="Could not allocate a booking reference, please retry"), 503

    log_event(
        "BOOKING_CREATE",
        user_id=booking.user_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"reference": booking.booking_reference, "event_date": event_date.isoformat()},
    )
    return jsonify(booking.to_dict()), 201


# ---------- CUSTOMERS: view my bookings ----------
@booking_bp.get("/me")
@login_required
def my_bookings():
    status = request.args.get("status")  # PENDING/CONFIRMED/CANCELLED/REFUNDED
    q = Booking.query.filter_by(user_id=g.user.id)
    if status:
        q = q.filter_by(status=status)

    rows = q.order_by(Booking.event_date.desc()).all()
    return jsonify([b.to_dict() for b in rows]), 200


# ---------- CUSTOMERS / GUESTS: look up by reference ----------
@booking_bp.get("/<reference>")
def get_booking(reference: str):
    reference = (reference or "").strip()
    if not validate_booking_reference(reference):
        return jsonify(error="Invalid booking reference format"), 400

    booking = Booking.query.filter_by(booking_reference=reference).first()
    if not booking:
        return jsonify(error="Booking not found"), 404

    if not can_view_booking(booking, request.args.get("email")):
        return jsonify(error="Access denied"), 403

    return jsonify(booking.to_dict()), 200
