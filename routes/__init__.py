from flask import Blueprint, jsonify

health_bp = Blueprint("health", __name__)

@health_bp.get("/health")
def health():
    return jsonify(status="ok"), 200

from .auth import auth_bp
from .admin import admin_bp
from .booking import booking_bp
from .catalog import catalog_bp
from .dashboard import dashboard_bp
from .payments import payments_bp
from .promo_codes import promo_bp
from .stripe_webhook import webhook_bp
