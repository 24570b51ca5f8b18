"""
Text helpers for user-supplied content.
"""

import re
from typing import Optional

SCRIPT_BLOCK_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
HTML_TAG_RE = re.compile(r"<[^>]*>")


def sanitize_html(value: Optional[str]) -> Optional[str]:
    """Trim, then strip script blocks and any remaining HTML tags."""
    if value is None:
        return None
    cleaned = SCRIPT_BLOCK_RE.sub("", value.strip())
    return HTML_TAG_RE.sub("", cleaned)


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Trimmed string, or None when empty."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def split_csv(value: Optional[str]) -> list:
    """'a, b,,c' -> ['a', 'b', 'c']"""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
