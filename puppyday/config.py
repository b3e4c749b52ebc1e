import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./puppyday.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# Public site URL used in SMS links, unsubscribe links and campaign booking links
APP_URL = os.getenv("APP_URL", "https://thepuppyday.com").rstrip("/")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# All calendar math (today, blocked days, reminders) happens in the salon's local time
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "America/Los_Angeles")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Puppy Day <noreply@thepuppyday.com>")

# Twilio SMS Configuration
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")

# "live" sends through Twilio/Resend, "mock" records messages in memory.
# Defaults to mock unless both providers are configured.
_providers_configured = bool(RESEND_API_KEY and TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN)
NOTIFICATION_PROVIDER = os.getenv("NOTIFICATION_PROVIDER", "live" if _providers_configured else "mock")

UNSUBSCRIBE_TOKEN_MAX_AGE_DAYS = int(os.getenv("UNSUBSCRIBE_TOKEN_MAX_AGE_DAYS", "30"))

# Public endpoint throttling (requests per window)
BOOKING_RATE_LIMIT = int(os.getenv("BOOKING_RATE_LIMIT", "10"))
WAITLIST_RATE_LIMIT = int(os.getenv("WAITLIST_RATE_LIMIT", "10"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
