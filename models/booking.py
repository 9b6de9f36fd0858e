from datetime import datetime
from models.db import db

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    # NCB-YYYYMMDD-XXXXXX; generation is random so the constraint is what keeps it unique
    booking_reference = db.Column(db.String(20), nullable=False, unique=True, index=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    guest_email = db.Column(db.String(255), nullable=True)
    guest_name = db.Column(db.String(120), nullable=True)

    event_date = db.Column(db.Date, nullable=False, index=True)
    guest_count = db.Column(db.Integer, nullable=False, default=1)

    status = db.Column(db.String(20), nullable=False, default="PENDING")
    # status values: PENDING, CONFIRMED, CANCELLED, REFUNDED

    # pence
    total_amount = db.Column(db.Integer, nullable=False)
    discount_amount = db.Column(db.Integer, nullable=False, default=0)
    final_amount = db.Column(db.Integer, nullable=False)

    promo_code_id = db.Column(db.Integer, db.ForeignKey("promo_codes.id"), nullable=True)
    customer_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", back_populates="bookings")
    promo_code = db.relationship("PromoCode")
    items = db.relationship("BookingItem", back_populates="booking", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "booking_reference": self.booking_reference,
            "event_date": self.event_date.isoformat(),
            "guest_count": self.guest_count,
            "status": self.status,
            "total_amount": self.total_amount,
            "discount_amount": self.discount_amount,
            "final_amount": self.final_amount,
            "promo_code": self.promo_code.code if self.promo_code else None,
            "customer_notes": self.customer_notes,
            "created_at": self.created_at.isoformat(),
            "items": [i.to_dict() for i in self.items],
        }


class BookingItem(db.Model):
    __tablename__ = "booking_items"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)

    item_type = db.Column(db.String(10), nullable=False)  # PACKAGE, EXTRA
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=True)
    extra_id = db.Column(db.Integer, db.ForeignKey("extras.id"), nullable=True)

    name = db.Column(db.String(120), nullable=False)  # copied so later renames don't change history
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Integer, nullable=False)   # pence
    total_price = db.Column(db.Integer, nullable=False)  # pence

    booking = db.relationship("Booking", back_populates="items")

    def to_dict(self):
        return {
            "item_type": self.item_type,
            "package_id": self.package_id,
            "extra_id": self.extra_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }
