"""
Shared utilities.
"""
import re
from typing import Optional
from urllib.parse import urlparse

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_text(text: Optional[str]) -> str:
    """
    Remove NUL bytes and other control characters that PostgreSQL text columns
    reject, then trim.
    """
    if not text:
        return ""
    return _CONTROL_CHARS.sub("", text).strip()


def is_http_url(url: Optional[str]) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars]
