"""Input sanitization for values copied from alert payloads into tracker fields."""

from __future__ import annotations

import math
import re
from urllib.parse import urlsplit

from alertbridge.models.enums import Severity

SEVERITY_ORDER: dict[str, int] = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.NOTE: 0,
    Severity.WARNING: 0,
}

MAX_STRING_LENGTH = 1000
MAX_SUMMARY_LENGTH = 255
MAX_LABEL_LENGTH = 255
MAX_SAFE_INTEGER = 2**53 - 1

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_LABEL_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_.\-]")

# Tracker issue key: PROJ-123, SUB-PROJ-123
ISSUE_KEY_RE = re.compile(r"^[A-Z][A-Z0-9]+(?:-[A-Z0-9]+)*-\d+$")


def sanitize_string(value, max_length: int = MAX_STRING_LENGTH) -> str:
    """Strip control characters, trim, and truncate."""
    if value is None:
        return ""
    return _CONTROL_CHARS_RE.sub("", str(value)).strip()[:max_length]


def sanitize_url(value, fallback: str = "") -> str:
    """Return the URL if it is an absolute http(s) URL, else *fallback*."""
    if not value:
        return fallback
    candidate = sanitize_string(value, 2048)
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return fallback
    if parts.scheme in ("http", "https") and parts.netloc:
        return candidate
    return fallback


def sanitize_number(value, fallback: int | None = None) -> int | None:
    """Return *value* as a non-negative safe integer, else *fallback*."""
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return fallback
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return fallback
        value = int(value)
    if not isinstance(value, int):
        return fallback
    if 0 <= value <= MAX_SAFE_INTEGER:
        return value
    return fallback


def sanitize_severity(value, fallback: str = "medium") -> str:
    """Lower-case *value* and accept it only if it is a known severity."""
    if not value:
        return fallback
    lowered = str(value).strip().lower()
    return lowered if lowered in SEVERITY_ORDER else fallback


def sanitize_label(value) -> str:
    """Make *value* safe as a tracker label (no spaces, restricted charset)."""
    if not value:
        return ""
    return _LABEL_UNSAFE_RE.sub("-", str(value))[:MAX_LABEL_LENGTH]


def escape_jql(value: str) -> str:
    """Escape a value for inclusion inside a double-quoted JQL string."""
    if not value:
        return ""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def is_valid_issue_key(key) -> bool:
    return isinstance(key, str) and bool(ISSUE_KEY_RE.match(key))
