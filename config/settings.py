"""
Jomla - Centralized Configuration
==================================
All environment variables and constants are loaded here.
No other module should call os.getenv() directly.
"""

import os
import sys
from dotenv import load_dotenv

load_dotenv()


# ==========================================
# 🗄️ Database
# ==========================================
DATABASE_URL = os.getenv("DATABASE_URL", "")

if not DATABASE_URL:
    DB_USER = os.getenv("DB_USER")
    DB_PASSWORD = os.getenv("DB_PASSWORD")
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME")

    if not all([DB_USER, DB_PASSWORD, DB_HOST, DB_NAME]):
        print("[ERROR] Critical: Database config missing in .env (DATABASE_URL or DB_USER, DB_PASSWORD, DB_HOST, DB_NAME)")
        sys.exit(1)

    DATABASE_URL = f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


# ==========================================
# 🔐 Security
# ==========================================
SECRET_KEY = os.getenv("SECRET_KEY")

if not SECRET_KEY:
    print("[ERROR] Critical: SECRET_KEY missing in .env")
    sys.exit(1)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days
MIN_PASSWORD_LENGTH = 6

COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"
COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "lax")
CSRF_ENABLED = os.getenv("CSRF_ENABLED", "true").lower() == "true"


# ==========================================
# 🛒 Cart
# ==========================================
CART_SESSION_COOKIE = "cart_session_id"
CART_SESSION_MAX_AGE = 60 * 60 * 24 * 365  # 1 year

# "native": merge inside this app's transaction | "procedure": call merge_guest_cart_to_user()
CART_MERGE_STRATEGY = os.getenv("CART_MERGE_STRATEGY", "native")

CART_ABANDON_HOURS = int(os.getenv("CART_ABANDON_HOURS") or "24")
GUEST_CART_TTL_DAYS = int(os.getenv("GUEST_CART_TTL_DAYS") or "30")


# ==========================================
# 🌐 Language
# ==========================================
LANGUAGE_COOKIE = "preferred_language"
DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "ar")
CURRENCY_LABELS = {"ar": "دج", "fr": "DA"}


# ==========================================
# 📁 File Upload
# ==========================================
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "static/uploads")
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB
DEFAULT_IMAGE_MAX_SIZE = (1000, 1000)


# ==========================================
# 🔧 App
# ==========================================
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
MAINTENANCE_MODE = os.getenv("MAINTENANCE_MODE", "false").lower() == "true"
MAINTENANCE_SECRET = os.getenv("MAINTENANCE_SECRET", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"
REQUEST_LOG_ENABLED = os.getenv("REQUEST_LOG_ENABLED", "true").lower() == "true"
REQUEST_LOG_RETENTION_DAYS = 30

# Base URL for absolute links
BASE_URL = os.getenv("BASE_URL", "http://127.0.0.1:8000")
