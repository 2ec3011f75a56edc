"""Turn the portal's date, time and duration labels into canonical values.

Every function here is best-effort: unparseable input gives ``None`` (or 0
for durations) and the caller treats it as missing data.
"""

from __future__ import annotations

import re
from datetime import date, time

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")  # fmt: skip
_MONTH_ALT = "|".join(_MONTHS)

_DATE_RE = re.compile(rf"(\d{{1,2}})\s+({_MONTH_ALT})\s+(\d{{4}})")
_DATE_LABEL_RE = re.compile(
    rf"(Mon|Tue|Wed|Thu|Fri|Sat|Sun),\s*(\d{{1,2}})\s*({_MONTH_ALT})\s*(\d{{4}})"
)
_TIME_24H_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_TIME_12H_RE = re.compile(r"(\d{1,2}):(\d{2})(?::(\d{2}))?\s*(AM|PM)", re.IGNORECASE)
_HOURS_RE = re.compile(r"(\d+)h", re.IGNORECASE)
_MINUTES_RE = re.compile(r"(\d+)m", re.IGNORECASE)
_BARE_MINUTES_RE = re.compile(r"^(\d{1,2})(?:\s|$|m)", re.IGNORECASE)
_CLOCK_DURATION_RE = re.compile(r"(\d{1,2}):(\d{2})")


def normalize_date(text: str | None) -> date | None:
    """Parse ``"11 Dec 2025"`` (possibly inside a longer label) into a date."""
    if not text:
        return None
    match = _DATE_RE.search(text)
    if not match:
        return None
    day, month_name, year = match.groups()
    try:
        return date(int(year), _MONTHS.index(month_name) + 1, int(day))
    except ValueError:
        return None


def date_label(text: str | None) -> str | None:
    """Pull a ``"Thu, 11 Dec 2025"`` label out of heading or summary text."""
    if not text:
        return None
    match = _DATE_LABEL_RE.search(text)
    if not match:
        return None
    weekday, day, month_name, year = match.groups()
    return f"{weekday}, {day} {month_name} {year}"


def normalize_time(text: str | None) -> time | None:
    """Parse 24-hour (``"14:30"``, ``"14:30:15"``) or 12-hour (``"2:30 PM"``) text.

    Seconds default to zero.  12 AM is midnight and 12 PM stays noon.
    """
    if not text:
        return None
    cleaned = text.strip()

    match = _TIME_24H_RE.match(cleaned)
    if match:
        hours, minutes, seconds = match.groups()
        return _build_time(int(hours), int(minutes), int(seconds or 0))

    match = _TIME_12H_RE.search(cleaned)
    if match:
        hours_text, minutes, seconds, period = match.groups()
        hours = int(hours_text)
        if hours > 12:
            return None
        if period.upper() == "PM" and hours != 12:
            hours += 12
        elif period.upper() == "AM" and hours == 12:
            hours = 0
        return _build_time(hours, int(minutes), int(seconds or 0))

    return None


def _build_time(hours: int, minutes: int, seconds: int) -> time | None:
    try:
        return time(hours, minutes, seconds)
    except ValueError:
        return None


def normalize_duration(text: str | None) -> int:
    """Parse a duration label into whole minutes.

    Handles ``"5h 30m"``, ``"5h30m"``, ``"5h50"``, ``"2h"``, ``"45m"`` and
    ``"1:50"``.  Seconds are dropped rather than rounded.  Returns 0 when
    nothing matches.
    """
    if not text:
        return 0
    cleaned = text.strip()

    hours_match = _HOURS_RE.search(cleaned)
    minutes_match = _MINUTES_RE.search(cleaned)

    # "1h50" / "1h 50": minutes without a unit right after the hours.
    if hours_match and not minutes_match:
        rest = cleaned[hours_match.end() :].strip()
        bare = _BARE_MINUTES_RE.match(rest)
        if bare and int(bare.group(1)) < 60:
            return int(hours_match.group(1)) * 60 + int(bare.group(1))

    if not hours_match and not minutes_match:
        clock = _CLOCK_DURATION_RE.search(cleaned)
        if clock:
            return int(clock.group(1)) * 60 + int(clock.group(2))

    hours = int(hours_match.group(1)) if hours_match else 0
    minutes = int(minutes_match.group(1)) if minutes_match else 0
    return hours * 60 + minutes
