from datetime import datetime
from models.db import db


class _InventoryItem:
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Integer, nullable=False, default=0)  # pence
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "is_active": self.is_active,
        }


class Package(_InventoryItem, db.Model):
    __tablename__ = "packages"

    max_guests = db.Column(db.Integer, nullable=True)

    def to_dict(self):
        data = super().to_dict()
        data["max_guests"] = self.max_guests
        return data


class Extra(_InventoryItem, db.Model):
    __tablename__ = "extras"


class PackagePricing(db.Model):
    """Per-date price override; dates without a row use the package's own price."""
    __tablename__ = "package_pricing"
    __table_args__ = (db.UniqueConstraint("package_id", "date", name="uq_package_pricing_package_date"),)

    id = db.Column(db.Integer, primary_key=True)
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    price = db.Column(db.Integer, nullable=False)  # pence
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class _DailyStock:
    # no row for a date means the item is not stock-limited that day
    owner_key = None

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    total_quantity = db.Column(db.Integer, nullable=False, default=0)
    available_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def can_book(self):
        return self.is_available and self.available_quantity > 0

    @classmethod
    def for_day(cls, day):
        """item id -> stock row for every item with stock recorded on `day`."""
        return {getattr(r, cls.owner_key): r for r in cls.query.filter_by(date=day).all()}

    def to_dict(self):
        return {
            "date": self.date.isoformat(),
            "total_quantity": self.total_quantity,
            "available_quantity": max(self.available_quantity, 0),
            "is_available": self.can_book,
        }


class PackageAvailability(_DailyStock, db.Model):
    __tablename__ = "package_availability"
    __table_args__ = (db.UniqueConstraint("package_id", "date", name="uq_package_availability_package_date"),)
    owner_key = "package_id"

    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=False)


class ExtraAvailability(_DailyStock, db.Model):
    __tablename__ = "extra_availability"
    __table_args__ = (db.UniqueConstraint("extra_id", "date", name="uq_extra_availability_extra_date"),)
    owner_key = "extra_id"

    extra_id = db.Column(db.Integer, db.ForeignKey("extras.id"), nullable=False)
