import calendar

from flask import current_app

from models import db
from models.user import Role
from models.cutoff_time import DailyCutoffTime

DEFAULT_ROLES = ["CUSTOMER", "ADMIN"]

def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def seed_cutoff_times():
    default = current_app.config.get("DEFAULT_CUTOFF_TIME", "23:00")
    existing = {c.day_of_week for c in DailyCutoffTime.query.all()}
    for weekday in (calendar.FRIDAY, calendar.SATURDAY):
        if weekday not in existing:
            db.session.add(DailyCutoffTime(day_of_week=weekday, cutoff_time=default))
    db.session.commit()
