"""Shared validation and normalization utilities"""

import math
import re
import secrets
from datetime import date
from typing import Any, Optional

from ..constants import DJ_GENRES

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: Optional[str]) -> bool:
    """Loose email shape check: something@something.tld"""
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def normalize_slug(value: Optional[str]) -> str:
    """
    Normalize a profile slug.

    Lowercases, replaces anything outside [a-z0-9-] with a hyphen, collapses
    repeated hyphens and strips them from both ends. An empty return value
    means the slug is unusable.
    """
    slug = (value or "").strip().lower()
    slug = re.sub(r"[^a-z0-9-]", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def parse_positive_int(raw: Any) -> Optional[int]:
    """Parse '$1,200' style input into 1200. Returns None unless the result is > 0."""
    digits = re.sub(r"\D", "", str(raw or ""))
    if not digits:
        return None
    value = int(digits)
    return value if value > 0 else None


def parse_event_date(raw: Optional[str]) -> Optional[date]:
    """Parse an HTML date input (YYYY-MM-DD)"""
    try:
        return date.fromisoformat((raw or "").strip())
    except ValueError:
        return None


def parse_genres(raw: Any) -> list[str]:
    """Genres may be stored as a list or as a comma separated string"""
    if isinstance(raw, (list, tuple)):
        items = [str(g) for g in raw]
    elif isinstance(raw, str):
        items = raw.split(",")
    else:
        return []
    return [g.strip() for g in items if g and g.strip()]


def clean_genres(selected: list[str]) -> list[str]:
    """Keep only known genres, in catalogue order, without duplicates"""
    chosen = {g.strip() for g in selected}
    return [g for g in DJ_GENRES if g in chosen]


def safe_next_path(raw: Optional[str], default: str = "/dashboard/profile") -> str:
    """Only allow relative redirects (prevents open redirects)"""
    value = (raw or "").strip()
    if value.startswith("/") and not value.startswith("//") and "\\" not in value:
        return value
    return default


def generate_public_token() -> str:
    """32 random bytes, hex encoded"""
    return secrets.token_hex(32)


def calc_platform_fee_total(quoted_total: int) -> int:
    """10% of the declared final price, rounded up to the dollar"""
    return math.ceil(quoted_total * 0.1)


def calc_fee_status(platform_fee_total: Optional[int], platform_fee_paid: int) -> str:
    if platform_fee_total is None:
        return "unknown"
    return "due" if platform_fee_total > platform_fee_paid else "ok"


def calc_fee_due(platform_fee_total: Optional[int], platform_fee_paid: Optional[int]) -> Optional[int]:
    if platform_fee_total is None or platform_fee_paid is None:
        return None
    return max(platform_fee_total - platform_fee_paid, 0)
