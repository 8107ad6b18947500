"""
Parsing of loose "updated" date strings and feed timestamps.

Structured pages publish month-day strings without a year ("Aug 14"). The
year is inferred from ``now``: a month-day that would land more than
FUTURE_TOLERANCE in the future is assumed to belong to the previous year.
That rollback is a heuristic; it is wrong for pages that legitimately list
future dates, which is why callers also apply a staleness ceiling.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone, tzinfo
import re
import time
from zoneinfo import ZoneInfo


FUTURE_TOLERANCE = timedelta(days=2)

_MONTHS = {name.lower(): idx for idx, name in enumerate(calendar.month_abbr) if name}
_MONTHS.update({name.lower(): idx for idx, name in enumerate(calendar.month_name) if name})
_MONTHS["sept"] = 9

_MONTH_DAY_RE = re.compile(
    r"\b(?P<month>[A-Za-z]{3,9})\.?\s+(?P<day>\d{1,2})(?:st|nd|rd|th)?(?:,?\s+(?P<year>\d{4}))?\b"
)
_NUMERIC_RE = re.compile(r"\b(?P<month>\d{1,2})/(?P<day>\d{1,2})(?:/(?P<year>\d{2,4}))?\b")
_RECENT_RE = re.compile(r"^\s*recently\s*$", re.IGNORECASE)
_PREFIX_RE = re.compile(
    r"^\s*(?P<date>(?:[A-Za-z]{3,9}\.?\s+\d{1,2}(?:,\s*\d{4})?|\d{1,2}/\d{1,2}(?:/\d{2,4})?))\s*[:\-–—]\s*(?P<rest>.*)$",
    re.DOTALL,
)


def resolve_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (KeyError, ValueError):
        return timezone.utc


def parse_updated(value: str | None, now: datetime) -> datetime | None:
    """Resolve an "updated" string to an aware datetime in ``now``'s timezone.

    Accepts "Aug 14", "August 14", "Aug. 14", "Aug 14, 2025", "8/14",
    "8/14/2025", "8/14/25" and "Recently" (treated as ``now``). Returns None
    for anything else.
    """
    if not value:
        return None
    text = value.strip()
    if _RECENT_RE.match(text):
        return now

    month = day = None
    year: int | None = None
    match = _MONTH_DAY_RE.search(text)
    if match and match.group("month").lower().rstrip(".") in _MONTHS:
        month = _MONTHS[match.group("month").lower().rstrip(".")]
        day = int(match.group("day"))
        year = int(match.group("year")) if match.group("year") else None
    else:
        match = _NUMERIC_RE.search(text)
        if match:
            month = int(match.group("month"))
            day = int(match.group("day"))
            if match.group("year"):
                year = int(match.group("year"))
                if year < 100:
                    year += 2000
    if month is None or day is None:
        return None

    explicit_year = year is not None
    try:
        resolved = datetime(year or now.year, month, day, tzinfo=now.tzinfo)
    except ValueError:
        return None
    if not explicit_year and resolved - now > FUTURE_TOLERANCE:
        try:
            resolved = resolved.replace(year=resolved.year - 1)
        except ValueError:
            return None
    return resolved


def split_date_prefix(note: str) -> tuple[str | None, str]:
    """Split "Aug 14: Stafford was limited" into ("Aug 14", "Stafford was limited")."""
    match = _PREFIX_RE.match(note or "")
    if not match:
        return None, (note or "").strip()
    return match.group("date").strip(), match.group("rest").strip()


def looks_like_date(value: str | None) -> bool:
    if not value:
        return False
    text = value.strip()
    if _RECENT_RE.match(text):
        return True
    if len(text) > 20:
        return False
    match = _MONTH_DAY_RE.fullmatch(text.rstrip("."))
    if match and match.group("month").lower().rstrip(".") in _MONTHS:
        return True
    return bool(_NUMERIC_RE.fullmatch(text))


def format_short_date(value: datetime) -> str:
    """Render as "Aug 14" (no zero padding, no year)."""
    return f"{value.strftime('%b')} {value.day}"


def within_window(
    value: datetime,
    now: datetime,
    lookback_hours: float,
    staleness_days: int | None = None,
    day_granularity: bool = False,
) -> bool:
    """Whether ``value`` falls inside the lookback window and under the staleness ceiling.

    With ``day_granularity`` the cutoff is floored to the start of its day,
    so a date-only value is kept if any moment of that day is in the window.
    """
    if staleness_days is not None and now - value > timedelta(days=staleness_days):
        return False
    cutoff = now - timedelta(hours=lookback_hours)
    if day_granularity:
        cutoff = cutoff.replace(hour=0, minute=0, second=0, microsecond=0)
    return value >= cutoff


def from_struct_time(value: time.struct_time | None, tz: tzinfo) -> datetime | None:
    """Convert a feedparser ``*_parsed`` UTC struct_time into an aware datetime."""
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc).astimezone(tz)
    except (OverflowError, ValueError, TypeError):
        return None
