from datetime import datetime
from models.db import db
from booking.promo_codes import DiscountType

class PromoCode(db.Model):
    __tablename__ = "promo_codes"

    id = db.Column(db.Integer, primary_key=True)
    # stored already normalized with format_promo_code()
    code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    description = db.Column(db.String(255), nullable=True)

    discount_type = db.Column(db.Enum(DiscountType, name="discount_type"), nullable=False)
    # percent (0-100) or pence, depending on discount_type
    discount_value = db.Column(db.Float, nullable=False)
    min_purchase_amount = db.Column(db.Integer, nullable=True)  # pence
    max_discount_amount = db.Column(db.Integer, nullable=True)  # pence

    usage_limit = db.Column(db.Integer, nullable=True)
    usage_count = db.Column(db.Integer, nullable=False, default=0)

    valid_from = db.Column(db.DateTime, nullable=True)   # UTC
    valid_until = db.Column(db.DateTime, nullable=True)  # UTC
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
