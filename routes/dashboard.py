"""
Admin dashboard figures. Periods are counted on the event date in UK time;
revenue is the final amount of CONFIRMED bookings, in pence.
"""
from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify, current_app

from booking.dates import UK_TZ
from models import db
from models.booking import Booking, BookingItem
from models.catalog import Package
from utils.auth_context import require_roles

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/admin/dashboard")

STATUSES = ("PENDING", "CONFIRMED", "CANCELLED", "REFUNDED")
REVENUE_PERIODS = ("daily", "weekly", "monthly")


def _uk_today():
    return datetime.now(UK_TZ).date()


def _period_bounds(today):
    """(start, end) pairs for today, this week (Monday first) and this month."""
    week_start = today - timedelta(days=today.weekday())
    month_start = today.replace(day=1)
    next_month = (month_start + timedelta(days=32)).replace(day=1)
    return {
        "today": (today, today),
        "this_week": (week_start, week_start + timedelta(days=6)),
        "this_month": (month_start, next_month - timedelta(days=1)),
    }


def _months_back(day, months):
    index = day.year * 12 + day.month - 1 - months
    return day.replace(year=index // 12, month=index % 12 + 1, day=1)


def _bucket(period, day):
    """(first day, label) of the chart bucket holding `day`."""
    if period == "daily":
        return day, f"{day.day} {day:%b}"
    if period == "weekly":
        start = day - timedelta(days=day.weekday())
        return start, f"Week of {start.day} {start:%b}"
    start = day.replace(day=1)
    return start, f"{start:%B %Y}"


@dashboard_bp.get("/stats")
@require_roles("ADMIN")
def stats():
    bookings = {}
    revenue = {}
    for name, (start, end) in _period_bounds(_uk_today()).items():
        in_period = (Booking.event_date >= start, Booking.event_date <= end)
        bookings[name] = Booking.query.filter(*in_period).count()
        revenue[name] = (
            db.session.query(db.func.coalesce(db.func.sum(Booking.final_amount), 0))
            .filter(Booking.status == "CONFIRMED", *in_period)
            .scalar()
        )

    by_status = dict.fromkeys(STATUSES, 0)
    for status, count in db.session.query(Booking.status, db.func.count(Booking.id)).group_by(Booking.status):
        by_status[status] = count
    bookings["by_status"] = by_status

    rows = (
        db.session.query(Package.id, Package.name, db.func.count(BookingItem.id), db.func.sum(BookingItem.total_price))
        .join(BookingItem, BookingItem.package_id == Package.id)
        .join(Booking, Booking.id == BookingItem.booking_id)
        .filter(Booking.status == "CONFIRMED")
        .group_by(Package.id, Package.name)
        .all()
    )
    package_total = sum(r[3] or 0 for r in rows)
    packages = sorted(
        (
            {
                "id": package_id,
                "name": name,
                "booking_count": count,
                "revenue": total or 0,
                "percentage": round((total or 0) * 100 / package_total, 2) if package_total else 0,
            }
            for package_id, name, count, total in rows
        ),
        key=lambda p: p["revenue"],
        reverse=True,
    )

    revenue["currency"] = current_app.config.get("CURRENCY", "gbp")
    return jsonify(bookings=bookings, revenue=revenue, packages=packages), 200


@dashboard_bp.get("/revenue")
@require_roles("ADMIN")
def revenue_chart():
    """
    Confirmed revenue grouped by event date: the last 30 days, 12 weeks or
    12 months up to today. Buckets with no revenue are omitted.
    """
    period = request.args.get("period", "daily")
    if period not in REVENUE_PERIODS:
        return jsonify(error="Invalid period. Must be daily, weekly, or monthly"), 400

    today = _uk_today()
    if period == "daily":
        start = today - timedelta(days=29)
    elif period == "weekly":
        start = _bucket(period, today)[0] - timedelta(weeks=11)
    else:
        start = _months_back(today, 11)

    rows = (
        db.session.query(Booking.event_date, Booking.final_amount)
        .filter(Booking.status == "CONFIRMED", Booking.event_date >= start, Booking.event_date <= today)
        .order_by(Booking.event_date.asc())
        .all()
    )
    grouped = {}
    for event_date, amount in rows:
        key = _bucket(period, event_date)
        grouped[key] = grouped.get(key, 0) + amount

    data = [{"label": label, "value": value, "date": day.isoformat()} for (day, label), value in grouped.items()]
    return jsonify(period=period, data=data), 200


@dashboard_bp.get("/today-bookings")
@require_roles("ADMIN")
def today_bookings():
    rows = (
        Booking.query
        .filter_by(event_date=_uk_today())
        .order_by(Booking.created_at.desc())
        .all()
    )
    out = []
    for b in rows:
        out.append({
            "id": b.id,
            "booking_reference": b.booking_reference,
            "customer_name": (b.user.full_name if b.user else None) or b.guest_name or "Unknown",
            "customer_email": (b.user.email if b.user else None) or b.guest_email or "Unknown",
            "status": b.status,
            "final_amount": b.final_amount,
            "guest_count": b.guest_count,
            "booked_at": b.created_at.strftime("%H:%M"),
            "items": [{"name": i.name, "quantity": i.quantity} for i in b.items],
        })
    return jsonify(out), 200
