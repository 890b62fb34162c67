# aurora_backend/services/email_service.py
import logging
from datetime import datetime
from html import escape
from typing import Optional

import pytz
import resend

from aurora_backend.core import config
from aurora_backend.core.models import Appointment

if config.RESEND_API_KEY:
    resend.api_key = config.RESEND_API_KEY
    logging.info("E-mail service (Resend) initialised.")
else:
    logging.warning("RESEND_API_KEY is not configured. Booking notification e-mails are disabled.")

DAY_NAMES = ["Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"]
MONTH_NAMES = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


# --- Helpers ---
def format_consultation_date(appointment: Appointment) -> str:
    """'Jumat, 10 Januari 2025'"""
    if appointment.date is None:
        return "N/A"
    d = appointment.date
    return f"{DAY_NAMES[d.weekday()]}, {d.day:02d} {MONTH_NAMES[d.month - 1]} {d.year}"


def format_booking_time(created_at: Optional[datetime]) -> str:
    if created_at is None:
        return "N/A"
    tz = pytz.timezone(config.CLINIC_TIMEZONE)
    if created_at.tzinfo is None:
        created_at = pytz.utc.localize(created_at)
    return created_at.astimezone(tz).strftime("%d/%m/%Y %H:%M")


def _get_base_css() -> str:
    return """
        body { font-family: 'Helvetica Neue', Helvetica, Arial, sans-serif; background-color: #f7f3f0; color: #333; margin: 0; padding: 0; }
        .container { max-width: 600px; margin: 20px auto; background-color: #ffffff; padding: 30px; border-radius: 8px; }
        h1 { color: #b76e79; font-size: 22px; border-bottom: 2px solid #eee; padding-bottom: 10px; }
        .detail { background-color: #fdf2f4; padding: 10px; border-radius: 4px; border-left: 5px solid #b76e79; }
    """


def build_new_booking_email(appointment: Appointment) -> dict:
    subject = f"Booking baru: {appointment.service} - {appointment.name}"
    note = escape(appointment.note) if appointment.note else "-"
    html_content = f"""
    <!DOCTYPE html>
    <html lang="id">
    <head><style>{_get_base_css()}</style></head>
    <body>
        <div class="container">
            <h1>Permintaan Booking Baru - {escape(config.CLINIC_NAME)}</h1>
            <p>Ada permintaan konsultasi baru yang menunggu konfirmasi:</p>
            <div class="detail">
                <strong>Nama:</strong> {escape(appointment.name)}<br>
                <strong>WhatsApp:</strong> {escape(appointment.phone)}<br>
                <strong>Email:</strong> {escape(appointment.email)}<br>
                <strong>Layanan:</strong> {escape(appointment.service)}<br>
                <strong>Tgl Konsultasi:</strong> {format_consultation_date(appointment)}<br>
                <strong>Catatan:</strong> {note}<br>
                <strong>Tgl Booking:</strong> {format_booking_time(appointment.createdAt)}
            </div>
            <p style="margin-top: 20px;">Buka dasbor admin untuk memproses janji temu ini.</p>
        </div>
    </body>
    </html>
    """
    return {
        "from": config.SENDER_EMAIL_ADDRESS,
        "to": [config.CLINIC_NOTIFICATION_EMAIL],
        "subject": subject,
        "html": html_content,
    }


# --- Notifications ---
def send_new_booking_email(appointment: Appointment) -> bool:
    """Notifies the clinic about a new booking. Never raises; the booking is already stored."""
    if not config.RESEND_API_KEY or not config.CLINIC_NOTIFICATION_EMAIL:
        logging.warning(f"Skipping booking e-mail for {appointment.id}: Resend or CLINIC_NOTIFICATION_EMAIL not configured.")
        return False
    try:
        resend.Emails.send(build_new_booking_email(appointment))
        logging.info(f"Booking notification sent to {config.CLINIC_NOTIFICATION_EMAIL} for appointment {appointment.id}.")
        return True
    except Exception as e:
        logging.error(f"RESEND ERROR: failed to send booking notification for {appointment.id}: {e}")
        return False
