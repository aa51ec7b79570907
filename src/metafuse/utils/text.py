"""Text helpers shared by provider adapters."""

import html
import re
from typing import Any, Optional

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_TAG = re.compile(r"<[^>]*>")
_READ_MORE = re.compile(r"Read more on Last\.fm.*$", re.IGNORECASE | re.DOTALL)
_DURATION = re.compile(r"^(\d+):(\d{1,2})$")


def summarize(text: str, sentences: int = 3) -> str:
    """Return the first few sentences of a long text."""
    return " ".join(_SENTENCE_SPLIT.split(text.strip())[:sentences])


def strip_html(text: str) -> str:
    """Remove markup and the trailing "Read more" link from provider bios."""
    text = _TAG.sub("", text)
    text = html.unescape(text)
    return _READ_MORE.sub("", text).strip()


def normalize_for_match(value: str) -> str:
    """Lower-case, drop punctuation and collapse whitespace for fuzzy comparison."""
    value = re.sub(r"[^\w\s]", "", value.lower())
    return re.sub(r"\s+", " ", value).strip()


def parse_duration(value: Optional[str]) -> Optional[int]:
    """Parse "m:ss" into seconds.

    Examples:
        "4:32" -> 272
        "" -> None
    """
    if not value:
        return None
    match = _DURATION.match(value.strip())
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def parse_int(value: Any) -> Optional[int]:
    """Leading-integer parse that tolerates junk ("3", "A3" -> None, "12b" -> 12)."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = re.match(r"\s*(-?\d+)", str(value))
    return int(match.group(1)) if match else None


def non_empty(value: Optional[str]) -> Optional[str]:
    """Collapse blank strings to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None
