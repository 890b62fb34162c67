# aurora_backend/core/config.py
import os

from dotenv import load_dotenv

# Loads variables from a local .env (ignored when the file is absent)
load_dotenv()

# --- Firebase ---
GOOGLE_APPLICATION_CREDENTIALS = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", "credentials.json")
FIREBASE_WEB_API_KEY = os.environ.get("FIREBASE_WEB_API_KEY")
IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# --- Clinic ---
CLINIC_NAME = os.environ.get("CLINIC_NAME", "Aurora Beauty Clinic")
CLINIC_TIMEZONE = os.environ.get("CLINIC_TIMEZONE", "Asia/Jakarta")
CLINIC_NOTIFICATION_EMAIL = os.environ.get("CLINIC_NOTIFICATION_EMAIL")

# --- E-mail (Resend) ---
RESEND_API_KEY = os.environ.get("RESEND_API_KEY")
SENDER_EMAIL_ADDRESS = os.environ.get("SENDER_EMAIL_ADDRESS", "Booking Aurora <booking@aurorabeauty.com>")

# --- HTTP ---
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://localhost:9002").split(",")
    if origin.strip()
]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Keep-alive interval (seconds) for the admin live appointment feed
FEED_KEEPALIVE_SECONDS = float(os.environ.get("FEED_KEEPALIVE_SECONDS", "15"))
