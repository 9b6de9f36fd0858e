import math

from flask import Blueprint, request, jsonify

from booking.promo_codes import format_promo_code, validate_promo_code
from models.promo_code import PromoCode
from utils.money import format_pounds, whole_pence
from utils.parsing import parse_instant

promo_bp = Blueprint("promo_codes", __name__, url_prefix="/promo-codes")


@promo_bp.post("/validate")
def validate():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(error="Invalid request"), 400

    code = data.get("code")
    subtotal = data.get("subtotal")
    if not code or not isinstance(code, str):
        return jsonify(error="Promo code is required"), 400
    if subtotal is None:
        return jsonify(error="Subtotal is required"), 400
    # the JSON parser lets NaN and Infinity through as floats
    if isinstance(subtotal, bool) or not isinstance(subtotal, (int, float)) or not math.isfinite(subtotal) or subtotal < 0:
        return jsonify(error="Invalid subtotal"), 400

    booking_date = None
    if data.get("booking_date"):
        try:
            booking_date = parse_instant(data["booking_date"])
        except ValueError:
            return jsonify(error="Invalid booking_date"), 400

    promo = PromoCode.query.filter_by(code=format_promo_code(code)).first()
    result = validate_promo_code(promo, subtotal, booking_date, format_amount=format_pounds)
    if not result.is_valid:
        return jsonify(valid=False, error=result.error), 400

    return jsonify(
        valid=True,
        code=promo.code,
        description=promo.description,
        discount_type=promo.discount_type.value,
        discount_value=promo.discount_value,
        discount_amount=whole_pence(result.discount_amount),
    ), 200
