"""Storage lookups feeding the availability engine."""
from flask import current_app

from models.blackout_date import BlackoutDate
from models.catalog import Package, Extra, PackagePricing, PackageAvailability, ExtraAvailability
from models.cutoff_time import DailyCutoffTime

STOCK_MODELS = {Package: PackageAvailability, Extra: ExtraAvailability}


def load_cutoff_map() -> dict:
    """weekday -> "HH:mm" for active per-day overrides."""
    rows = DailyCutoffTime.query.filter_by(is_active=True).all()
    return {r.day_of_week: r.cutoff_time for r in rows}


def cutoff_time_for(day, cutoff_map=None) -> str:
    if cutoff_map is None:
        cutoff_map = load_cutoff_map()
    return cutoff_map.get(day.weekday(), current_app.config.get("DEFAULT_CUTOFF_TIME", "23:00"))


def load_blackouts(start, end) -> list:
    return (
        BlackoutDate.query
        .filter(BlackoutDate.date >= start, BlackoutDate.date <= end)
        .order_by(BlackoutDate.date.asc())
        .all()
    )


def package_price_for(package, day) -> int:
    row = PackagePricing.query.filter_by(package_id=package.id, date=day).first()
    return row.price if row else package.price


def stock_for(item, day):
    """The stock row for a package or extra on `day`, or None when it is not stock-limited."""
    model = STOCK_MODELS[type(item)]
    return model.query.filter_by(**{model.owner_key: item.id, "date": day}).first()


def take_stock(booking):
    # caller commits
    for item in booking.items:
        if item.item_type == "PACKAGE":
            model, item_id = PackageAvailability, item.package_id
        else:
            model, item_id = ExtraAvailability, item.extra_id
        model.query.filter_by(**{model.owner_key: item_id, "date": booking.event_date}).update(
            {model.available_quantity: model.available_quantity - item.quantity},
            synchronize_session=False,
        )
