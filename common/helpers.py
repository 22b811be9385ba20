"""
Jomla - Shared Helpers
=======================
Pure utility functions with NO module dependencies.
"""

import re
import secrets
import unicodedata
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def safe_int(value: Optional[str]) -> Optional[int]:
    """Safely convert a string to int. Returns None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


def safe_decimal(value, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Safely convert a value to Decimal. Returns default on failure."""
    if value is None or str(value).strip() == "":
        return default
    try:
        return Decimal(str(value).strip().replace(",", "."))
    except (InvalidOperation, ValueError, TypeError):
        return default


def format_money(value) -> str:
    """Format an amount with two decimals and thousand separators: 1,250.00"""
    if value is None:
        return "0.00"
    try:
        return "{:,.2f}".format(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError):
        return str(value)


def format_datetime(value, fmt: str = "%Y-%m-%d %H:%M") -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime(fmt)
    return str(value)


def get_real_ip(request) -> str:
    """Extract real client IP from request (handles X-Forwarded-For proxy header)."""
    x_forwarded = request.headers.get("X-Forwarded-For")
    if x_forwarded:
        return x_forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """ASCII slug from a (French) name. Empty if nothing usable remains."""
    if not text:
        return ""
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _SLUG_STRIP.sub("-", normalized.lower()).strip("-")


# ==========================================
# Order Number Generator
# ==========================================

_ORDER_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"  # no O/0/I/1/L


def generate_order_number(length: int = 6) -> str:
    """Human-readable order number: CMD-20260101-7KQ2XH"""
    suffix = "".join(secrets.choice(_ORDER_ALPHABET) for _ in range(length))
    return f"CMD-{now_utc():%Y%m%d}-{suffix}"


def generate_unique_order_number(db, max_retries: int = 10) -> str:
    """Generate a unique order number (checks DB for collision)."""
    from modules.order.models import Order
    for _ in range(max_retries):
        number = generate_order_number()
        exists = db.query(Order.id).filter(Order.order_number == number).first()
        if not exists:
            return number
    raise RuntimeError("Failed to generate unique order number after retries")
