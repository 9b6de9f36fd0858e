from datetime import datetime
from models.db import db

class DailyCutoffTime(db.Model):
    __tablename__ = "daily_cutoff_times"

    id = db.Column(db.Integer, primary_key=True)
    # Python weekday numbering: 0=Monday .. 4=Friday, 5=Saturday
    day_of_week = db.Column(db.Integer, nullable=False, unique=True)
    cutoff_time = db.Column(db.String(5), nullable=False)  # HH:mm, UK time
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
