import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./proposals.db")

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
FRONTEND_ORIGINS = [
    origin.strip() for origin in os.getenv("FRONTEND_ORIGINS", FRONTEND_URL).split(",") if origin.strip()
]

# Google Calendar OAuth Configuration
# Note: GOOGLE_REDIRECT_URI should point to FRONTEND (not backend API)
# OAuth flow: Google → Frontend → Frontend sends code + state to Backend API
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", f"{FRONTEND_URL}/configuracoes")

# Calendar sync tuning
CALENDAR_SYNC_INTERVAL_MINUTES = int(os.getenv("CALENDAR_SYNC_INTERVAL_MINUTES", "5"))
CALENDAR_SYNC_PAST_DAYS = int(os.getenv("CALENDAR_SYNC_PAST_DAYS", "7"))
CALENDAR_SYNC_FUTURE_DAYS = int(os.getenv("CALENDAR_SYNC_FUTURE_DAYS", "30"))
CALENDAR_SYNC_MAX_RESULTS = int(os.getenv("CALENDAR_SYNC_MAX_RESULTS", "250"))
TOKEN_REFRESH_MARGIN_MINUTES = int(os.getenv("TOKEN_REFRESH_MARGIN_MINUTES", "5"))

# PKCE verifiers only need to survive the round trip through Google's consent screen
PKCE_VERIFIER_TTL_SECONDS = int(os.getenv("PKCE_VERIFIER_TTL_SECONDS", "600"))
