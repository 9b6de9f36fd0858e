import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

from booking.dates import format_date_for_display
from utils.money import format_pounds

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Failed to send email to %s: %s", to_email, exc)
        return False, str(exc)


def send_booking_confirmation(booking):
    to_email = booking.user.email if booking.user else booking.guest_email
    if not to_email:
        return False, "No recipient"

    lines = [
        f"Your booking {booking.booking_reference} is confirmed.",
        "",
        f"Event date: {format_date_for_display(booking.event_date, include_year=True)}",
        f"Guests: {booking.guest_count}",
        f"Total paid: {format_pounds(booking.final_amount)}",
    ]
    return send_email(to_email, f"Booking confirmed: {booking.booking_reference}", "\n".join(lines))
