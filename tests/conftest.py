from datetime import date

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.booking import Booking
from models.catalog import Package, Extra
from models.promo_code import PromoCode
from models.user import User, Role
from booking.promo_codes import DiscountType
from booking.reference import generate_booking_reference
from security.password import hash_password
from utils.seed import seed_roles, seed_cutoff_times

PASSWORD = "correct-horse"
GUEST = "guest@example.com"

FRIDAY = "2030-01-04"
SATURDAY = "2030-01-05"
SUNDAY = "2030-01-06"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        seed_roles()
        seed_cutoff_times()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(email, *roles):
    user = User(email=email, password_hash=hash_password(PASSWORD), full_name=email.split("@")[0])
    for name in roles:
        user.roles.append(Role.query.filter_by(name=name).one())
    db.session.add(user)
    db.session.commit()
    return user


def login(client, email):
    """Log in through the API and return headers carrying the CSRF token."""
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return {"X-CSRF-Token": client.get_cookie("csrf_token").value}


@pytest.fixture
def customer(app):
    return make_user("cust@example.com", "CUSTOMER")


@pytest.fixture
def admin(app):
    return make_user("admin@example.com", "ADMIN")


@pytest.fixture
def customer_headers(client, customer):
    return login(client, customer.email)


@pytest.fixture
def admin_headers(client, admin):
    return login(client, admin.email)


@pytest.fixture
def package(app):
    row = Package(name="Gold", description="Dinner and show", price=5000, max_guests=10)
    db.session.add(row)
    db.session.commit()
    return row


@pytest.fixture
def extra(app):
    row = Extra(name="Champagne", price=2500)
    db.session.add(row)
    db.session.commit()
    return row


def make_booking(final_amount=5000, status="PENDING", promo=None, event_date=date(2030, 1, 4)):
    """A guest booking, by default for Friday 4 Jan 2030, written straight to the database."""
    booking = Booking(
        booking_reference=generate_booking_reference(),
        guest_email=GUEST,
        guest_name="Grace Guest",
        event_date=event_date,
        guest_count=1,
        status=status,
        total_amount=5000,
        discount_amount=5000 - final_amount,
        final_amount=final_amount,
        promo_code_id=promo.id if promo else None,
    )
    db.session.add(booking)
    db.session.commit()
    return booking


def make_promo(code="SAVE10", discount_type=DiscountType.PERCENTAGE, discount_value=10, **fields):
    promo = PromoCode(code=code, discount_type=discount_type, discount_value=discount_value, **fields)
    db.session.add(promo)
    db.session.commit()
    return promo
