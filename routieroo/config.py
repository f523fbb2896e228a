import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./routieroo.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Frontend base URL for redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Google OAuth Configuration (contacts + calendar share one consent screen)
# Redirect URIs point to the FRONTEND, which POSTs the code to the matching
# /callback endpoint: Google → Frontend → Backend API
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", f"{FRONTEND_URL}/auth/google-calendar")
GOOGLE_CONTACTS_REDIRECT_URI = os.getenv(
    "GOOGLE_CONTACTS_REDIRECT_URI", f"{FRONTEND_URL}/auth/google-contacts"
)

# Google Maps Platform (Routes + Geocoding)
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY")

# Route defaults
DEFAULT_STOP_COLOR = "#3b82f6"
DEFAULT_STOP_TYPE = "visit"
DEFAULT_STOP_DURATION_MINUTES = 30
DEFAULT_REMINDER_INTERVALS = [30, 10, 5]

# CORS
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]

# Background worker
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")

# Email (Resend)
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "RoutieRoo <reminders@routieroo.com>")
