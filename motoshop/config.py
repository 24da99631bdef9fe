import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./motoshop.db")

# Security - tokens are issued by the external identity service with this shared key
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Scheduling
# Trailing window (in days, booking date included) used to rank technician load
ROTATION_WINDOW_DAYS = int(os.getenv("ROTATION_WINDOW_DAYS", "7"))
# Brand names accepted for Auteco-only appointment types (comma separated, case-insensitive)
AUTECO_BRAND_NAMES = [
    name.strip() for name in os.getenv("AUTECO_BRAND_NAMES", "AUTECO").split(",") if name.strip()
]

# Workshop contact details shown for rework requests and plate restrictions
WORKSHOP_NAME = os.getenv("WORKSHOP_NAME", "Jm Motoservicio")
WORKSHOP_PHONE = os.getenv("WORKSHOP_PHONE", "+57 310 8402499")
WORKSHOP_WHATSAPP_URL = os.getenv("WORKSHOP_WHATSAPP_URL", "https://wa.me/573108402499")
WORKSHOP_BUSINESS_HOURS = os.getenv(
    "WORKSHOP_BUSINESS_HOURS", "Monday to Friday 7:00 AM - 5:30 PM (closed 12:00 - 1:00 PM)"
)

# Notifications
NOTIFICATIONS_ENABLED = os.getenv("NOTIFICATIONS_ENABLED", "true").lower() == "true"

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", f"{WORKSHOP_NAME} <citas@jmmotoservicio.com>")

# Twilio SMS Configuration
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER")
# Country calling code applied to local phone numbers before sending SMS
DEFAULT_COUNTRY_CODE = os.getenv("DEFAULT_COUNTRY_CODE", "57")

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")
