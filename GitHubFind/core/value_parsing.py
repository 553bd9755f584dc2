"""
Parsing of human-readable sizes, durations and timestamps.
"""

import re
from datetime import datetime, timedelta, timezone

_SIZE_UNITS = {
    "": 1,
    "b": 1,
    "k": 1024,
    "kb": 1024,
    "kib": 1024,
    "m": 1024 ** 2,
    "mb": 1024 ** 2,
    "mib": 1024 ** 2,
    "g": 1024 ** 3,
    "gb": 1024 ** 3,
    "gib": 1024 ** 3,
    "t": 1024 ** 4,
    "tb": 1024 ** 4,
    "tib": 1024 ** 4,
    "p": 1024 ** 5,
    "pb": 1024 ** 5,
    "pib": 1024 ** 5,
}

_DURATION_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    # Aliases
    "day": timedelta(days=1),
    "days": timedelta(days=1),
    "week": timedelta(weeks=1),
    "weeks": timedelta(weeks=1),
}

_SIZE_RE = re.compile(r"(-?\d+)\s*([a-zA-Z]*)")
_DURATION_RE = re.compile(r"(\d+)\s*([a-z]+)")


def parse_byte_size(text: str) -> int:
    """
    Parse a size such as "1024", "500k", "1M" or "2GiB" into bytes.
    Units are case-insensitive and binary (1024-based).
    """
    text = text.strip()
    if not text:
        raise ValueError("empty size string")

    m = _SIZE_RE.fullmatch(text)
    if not m:
        raise ValueError(f"invalid size {text!r}")

    number = int(m.group(1))
    if number < 0:
        raise ValueError("size cannot be negative")

    unit = m.group(2).lower()
    if unit not in _SIZE_UNITS:
        raise ValueError(f"unknown unit {unit!r} (supported: b, k, m, g, t, p)")

    return number * _SIZE_UNITS[unit]


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration such as "10h", "2d" or "3weeks".
    Supports s, m, h, d/day/days and w/week/weeks. Fractions, signs and
    combined units ("1h30m") are rejected.
    """
    text = text.strip()
    if not text:
        raise ValueError("empty duration string")

    m = _DURATION_RE.fullmatch(text)
    if not m:
        if text[0].isdigit() and text.isdigit():
            raise ValueError(f"invalid duration {text!r}: missing unit")
        raise ValueError(f"invalid duration {text!r}")

    unit = m.group(2)
    if unit not in _DURATION_UNITS:
        raise ValueError(f"invalid duration {text!r}: unknown unit {unit!r}")

    try:
        return int(m.group(1)) * _DURATION_UNITS[unit]
    except OverflowError:
        raise ValueError(f"invalid duration {text!r}: value too large") from None


def parse_time(text: str) -> datetime:
    """
    Parse a timestamp into an aware datetime.

    Supported formats:
        YYYY-MM-DD            (00:00:00 UTC)
        YYYY-MM-DD HH:MM:SS   (UTC)
        RFC 3339, e.g. 2018-10-27T10:00:00Z or 2018-10-27T10:00:00-07:00
    """
    text = text.strip()

    for fmt in ("%Y-%m-%d", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            pass

    if "T" in text:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None and parsed.tzinfo is not None:
            return parsed

    raise ValueError(
        f"invalid time format {text!r} (expected YYYY-MM-DD, YYYY-MM-DD HH:MM:SS, or RFC3339)"
    )
