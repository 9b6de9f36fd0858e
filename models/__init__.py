from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .catalog import Package, Extra, PackagePricing, PackageAvailability, ExtraAvailability
from .blackout_date import BlackoutDate
from .cutoff_time import DailyCutoffTime
from .promo_code import PromoCode
from .booking import Booking, BookingItem
from .payment import Payment
