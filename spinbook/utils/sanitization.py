import html
from typing import Optional


def sanitize_string(value: Optional[str]) -> str:
    """
    Escape HTML special characters so user input can be interpolated into
    email markup. None becomes an empty string.
    """
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def sanitize_attr(value: Optional[str]) -> str:
    """Escape a value placed inside an HTML attribute (also escapes backticks)"""
    return sanitize_string(value).replace("`", "&#96;")


def clip_text(value: Optional[str], max_length: int) -> Optional[str]:
    """Trim whitespace and cut to max_length; empty input becomes None"""
    if value is None:
        return None
    value = str(value).strip()[:max_length]
    return value or None


def format_usd(amount: Optional[float]) -> str:
    """Whole-dollar USD formatting: 1200 -> $1,200"""
    if amount is None:
        return "—"
    return f"${amount:,.0f}"
