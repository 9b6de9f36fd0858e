import logging

import click
import sqlalchemy as sa
from flask import Flask
from flask_migrate import Migrate

from config import Config
from models import db
from models.user import User, Role
from routes import (
    health_bp, auth_bp, admin_bp, booking_bp, catalog_bp, dashboard_bp, payments_bp, promo_bp, webhook_bp,
)
from security.csrf import enforce_csrf
from utils.auth_context import load_current_user
from utils.seed import seed_roles, seed_cutoff_times

logger = logging.getLogger(__name__)

# JSON-only API: nothing here should ever be framed or render active content
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none';",
}


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("stripe").setLevel(logging.WARNING)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(promo_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhook_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Seed roles and Friday/Saturday cutoffs (idempotent). Skipped until `flask db upgrade` has run.
    if not app.config.get("TESTING"):
        with app.app_context():
            if sa.inspect(db.engine).has_table("daily_cutoff_times"):
                seed_roles()
                seed_cutoff_times()

    # order matters: CSRF needs g.user
    app.before_request(load_current_user)
    app.before_request(enforce_csrf)

    @app.after_request
    def add_security_headers(resp):
        for name, value in SECURITY_HEADERS.items():
            resp.headers.setdefault(name, value)
        return resp

    register_cli(app)

    logger.info("Venue booking API ready")
    return app


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Grant the ADMIN role to an existing account."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if user is None:
            raise click.ClickException(f"No account for {email}")
        if user.has_role("ADMIN"):
            click.echo(f"{user.email} is already an admin")
            return

        seed_roles()
        user.roles.append(Role.query.filter_by(name="ADMIN").one())
        db.session.commit()
        click.echo(f"{user.email} is now an admin")

    @app.cli.command("seed")
    def seed():
        """Create default roles and Friday/Saturday cutoff times."""
        seed_roles()
        seed_cutoff_times()
        click.echo("Seeded roles and cutoff times")


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
