from datetime import datetime

from flask import Blueprint, request, jsonify

from booking.dates import (
    UK_TIMEZONE,
    UK_TZ,
    filter_blackout_dates,
    get_day_of_week_name,
    is_past_cutoff_time,
    is_weekend_day,
)
from models.catalog import Package, Extra, PackagePricing, PackageAvailability, ExtraAvailability
from utils.availability import cutoff_time_for, load_blackouts
from utils.parsing import parse_day

catalog_bp = Blueprint("catalog", __name__)


def _requested_day():
    """(date, None) or (None, error response) for the ?date= query parameter."""
    if not request.args.get("date"):
        return None, (jsonify(error="date parameter is required"), 400)
    try:
        return parse_day(request.args["date"]), None
    except ValueError:
        return None, (jsonify(error="Invalid date. Use YYYY-MM-DD"), 400)


def _day_state(day):
    blackouts = load_blackouts(day, day)
    is_blacked_out = not filter_blackout_dates([day], blackouts)
    return {
        "is_blacked_out": is_blacked_out,
        "blackout_reason": blackouts[0].reason if is_blacked_out else None,
        "is_past_cutoff": is_past_cutoff_time(day, cutoff_time_for(day)),
    }


def _stock_entry(stock, bookable):
    # items without a stock row for the day are not quantity-limited
    if stock is None:
        return {"is_available": bookable, "available_quantity": None, "total_quantity": None}
    entry = stock.to_dict()
    entry["is_available"] = bookable and entry["is_available"]
    del entry["date"]
    return entry


@catalog_bp.get("/packages")
def list_packages():
    rows = Package.query.filter_by(is_active=True).order_by(Package.price.asc()).all()
    return jsonify([p.to_dict() for p in rows]), 200


@catalog_bp.get("/extras")
def list_extras():
    rows = Extra.query.filter_by(is_active=True).order_by(Extra.name.asc()).all()
    return jsonify([e.to_dict() for e in rows]), 200


@catalog_bp.get("/packages/pricing")
def package_pricing():
    day, error = _requested_day()
    if error:
        return error
    if not is_weekend_day(day):
        return jsonify(error="Pricing is only available for Fridays and Saturdays"), 400

    overrides = {r.package_id: r.price for r in PackagePricing.query.filter_by(date=day).all()}
    packages = Package.query.filter_by(is_active=True).order_by(Package.name.asc()).all()
    return jsonify(
        date=day.isoformat(),
        day_of_week=get_day_of_week_name(day),
        pricing=[
            {
                "package_id": p.id,
                "package_name": p.name,
                "max_guests": p.max_guests,
                "price": overrides.get(p.id, p.price),
                "is_custom_price": p.id in overrides,
            }
            for p in packages
        ],
    ), 200


@catalog_bp.get("/packages/availability")
def package_availability():
    day, error = _requested_day()
    if error:
        return error
    if day < datetime.now(UK_TZ).date():
        return jsonify(error="Cannot check availability for past dates"), 400
    if not is_weekend_day(day):
        return jsonify(error="Bookings are only available on Fridays and Saturdays"), 400

    state = _day_state(day)
    if state["is_blacked_out"]:
        return jsonify(date=day.isoformat(), availability=[], **state), 200

    bookable = not state["is_past_cutoff"]
    stock = PackageAvailability.for_day(day)
    packages = Package.query.filter_by(is_active=True).order_by(Package.name.asc()).all()
    availability = []
    for p in packages:
        entry = {"package_id": p.id, "package_name": p.name, "max_guests": p.max_guests}
        entry.update(_stock_entry(stock.get(p.id), bookable))
        availability.append(entry)

    return jsonify(date=day.isoformat(), availability=availability, **state), 200


@catalog_bp.get("/extras/availability")
def extra_availability():
    day, error = _requested_day()
    if error:
        return error

    state = _day_state(day)
    bookable = is_weekend_day(day) and not state["is_blacked_out"] and not state["is_past_cutoff"]
    stock = ExtraAvailability.for_day(day)
    extras = Extra.query.filter_by(is_active=True).order_by(Extra.name.asc()).all()

    out = []
    for e in extras:
        entry = e.to_dict()
        entry["availability"] = _stock_entry(stock.get(e.id), bookable)
        out.append(entry)

    return jsonify(date=day.isoformat(), timezone=UK_TIMEZONE, extras=out, **state), 200
