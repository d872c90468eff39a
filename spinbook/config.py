import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

DATABASE_URL = os.getenv("DATABASE_URL")

# Public origin used for links in emails and checkout return URLs
SITE_URL = os.getenv("SITE_URL", "http://localhost:8000").rstrip("/")

# Hosted auth (Supabase project URL and anon key)
AUTH_URL = (os.getenv("AUTH_URL") or "").rstrip("/")
AUTH_ANON_KEY = os.getenv("AUTH_ANON_KEY")
SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", str(IS_PRODUCTION)).lower() == "true"

# Hosted object storage (S3-compatible) for DJ avatars
STORAGE_ENDPOINT_URL = os.getenv("STORAGE_ENDPOINT_URL")
STORAGE_ACCESS_KEY_ID = os.getenv("STORAGE_ACCESS_KEY_ID")
STORAGE_SECRET_ACCESS_KEY = os.getenv("STORAGE_SECRET_ACCESS_KEY")
STORAGE_REGION = os.getenv("STORAGE_REGION", "us-east-1")
AVATAR_BUCKET = os.getenv("AVATAR_BUCKET", "avatars")
# Base URL under which objects of the avatar bucket are publicly readable
STORAGE_PUBLIC_URL = (os.getenv("STORAGE_PUBLIC_URL") or "").rstrip("/")

# Dodo Payments Configuration
DODO_PAYMENTS_API_KEY = os.getenv("DODO_PAYMENTS_API_KEY")
DODO_PAYMENTS_WEBHOOK_SECRET = os.getenv("DODO_PAYMENTS_WEBHOOK_SECRET")
# "test_mode" or "live_mode" - default to test for safety
DODO_PAYMENTS_ENVIRONMENT = os.getenv("DODO_PAYMENTS_ENVIRONMENT", "test_mode")
# Pay-what-you-want product used for every booking deposit checkout
DODO_ADHOC_PRODUCT_ID = os.getenv("DODO_ADHOC_PRODUCT_ID")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "SpinBook HQ <no-reply@spinbookhq.com>")

# Shared secrets for machine callers
CRON_SECRET = os.getenv("CRON_SECRET")
HOOKS_SECRET = os.getenv("HOOKS_SECRET")
if IS_PRODUCTION and not HOOKS_SECRET:
    import warnings

    warnings.warn(
        "HOOKS_SECRET not set! Database hook endpoint will reject every call",
        RuntimeWarning,
        stacklevel=2,
    )

# Rate limiting (Redis)
REDIS_URL = os.getenv("REDIS_URL")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
