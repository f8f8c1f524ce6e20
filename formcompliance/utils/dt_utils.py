# File: utils/dt_utils.py
"""Date and time utilities for the form compliance engine.

Pure Python date/time functions with no I/O. The only clock read is
`dt_now_utc`, which managers use to default an omitted `now`; engines always
receive `now` as an argument.

Every calendar question ("which day is this submission on?", "when is 09:00
on Jan 2?") is answered in the evaluation calendar: DEFAULT_TIME_ZONE unless
a caller passes an explicit `tz`.

Functions:
    - set_default_timezone / get_default_timezone: Evaluation calendar
    - dt_now_utc: Current time (manager defaults only)
    - as_utc / as_local / dt_local_date: Timezone conversion and day lookup
    - dt_combine_local: Date + wall-clock time in the evaluation calendar
    - dt_parse / dt_to_utc / dt_format: Backend timestamp normalization
    - dt_parse_time: Wall-clock time columns
    - dt_parse_duration / dt_format_duration: Grace period strings
    - dt_format_display_date / dt_format_display_time: Reason strings
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
import logging
import re
from typing import cast
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (kept here so utils never import const.py)
# ==============================================================================

# Evaluation calendar; settings.apply_settings() replaces it
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

# Units for bare numbers in duration strings
TIME_UNIT_MINUTES = "minutes"
TIME_UNIT_HOURS = "hours"
TIME_UNIT_DAYS = "days"

# dt_parse / dt_format return types
HELPER_RETURN_DATETIME = "datetime"
HELPER_RETURN_DATETIME_UTC = "datetime_utc"
HELPER_RETURN_DATE = "date"
HELPER_RETURN_STORED_DATE = "stored_date"
HELPER_RETURN_ISO_DATETIME = "iso_datetime"
HELPER_RETURN_ISO_DATE = "iso_date"

# Date-only layouts accepted besides ISO
_DATE_FORMATS = ("%m/%d/%Y", "%Y/%m/%d")

# "1d 6h 30m", "24h", "90"
_DURATION_TOKEN = re.compile(r"(\d+)\s*([dhm]?)")
_DURATION_UNITS = {"d": TIME_UNIT_DAYS, "h": TIME_UNIT_HOURS, "m": TIME_UNIT_MINUTES}

DISPLAY_DATE_FORMAT = "%b %d, %Y"
DISPLAY_TIME_FORMAT = "%H:%M"
DISPLAY_UNKNOWN = "Unknown"


# ==============================================================================
# Evaluation Calendar
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Install the evaluation calendar used when no `tz` is passed."""
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def get_default_timezone() -> ZoneInfo:
    """Return the current evaluation calendar."""
    return DEFAULT_TIME_ZONE


def dt_now_utc() -> datetime:
    """Return the current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


# ==============================================================================
# Conversion
# ==============================================================================


def as_utc(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Express an instant in UTC; naive values are read as wall time in `tz`."""
    return as_local(dt_obj, tz).astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Express an instant in the evaluation calendar.

    Args:
        dt_obj: Aware datetime, or naive local wall time
        tz: Calendar override (defaults to DEFAULT_TIME_ZONE)
    """
    calendar = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        return dt_obj.replace(tzinfo=calendar)
    return dt_obj.astimezone(calendar)


def dt_local_date(dt_obj: datetime, tz: ZoneInfo | None = None) -> date:
    """Return the calendar day an instant falls on.

    An instant belongs to day D when it lies in [00:00 of D, 00:00 of D+1)
    local time, so 23:59:59.999 is still D and midnight is already D+1.
    """
    return as_local(dt_obj, tz).date()


def dt_combine_local(day: date, wall_time: time, tz: ZoneInfo | None = None) -> datetime:
    """Attach a wall-clock time to a calendar day in the evaluation calendar."""
    return datetime.combine(day, wall_time, tzinfo=tz or DEFAULT_TIME_ZONE)


# ==============================================================================
# Parsing Backend Values
# ==============================================================================


def _parse_date_only(raw: str) -> date | None:
    """Parse "2024-04-07", "04/07/2024" or "2024/04/07"."""
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    for layout in _DATE_FORMATS:
        try:
            return datetime.strptime(raw, layout).date()
        except ValueError:
            continue
    return None


def _to_datetime(value: str | date | datetime) -> datetime | None:
    """Turn a column value into a datetime (possibly naive)."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if not isinstance(value, str):
        return None

    # timestamptz columns serialize UTC with a trailing "Z"
    raw = value.strip()
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        day = _parse_date_only(raw)
        return datetime.combine(day, time.min) if day else None


def dt_parse(
    dt_input: str | date | datetime | None,
    tz: ZoneInfo | None = None,
    return_type: str | None = HELPER_RETURN_DATETIME,
) -> datetime | date | str | None:
    """Normalize a timestamp, date, or date string from a backend row.

    Naive values are pinned to `tz` (the evaluation calendar when omitted)
    before conversion, so "2024-01-01T09:00" means 09:00 local. Date-valued
    return types also read the day in `tz`, except HELPER_RETURN_STORED_DATE,
    which keeps the calendar date as written in the column.

    Args:
        dt_input: Column value, or None
        tz: Evaluation calendar for naive values and local days
        return_type: One of the HELPER_RETURN_* constants (see dt_format)

    Returns:
        The converted value, or None for empty or unparseable input.

    Example:
        >>> dt_parse("2024-01-01T09:00", return_type=HELPER_RETURN_DATE)
        datetime.date(2024, 1, 1)
    """
    if not dt_input:
        return None

    parsed = _to_datetime(dt_input)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz or DEFAULT_TIME_ZONE)
    return dt_format(parsed, return_type, tz)


def dt_to_utc(
    dt_input: str | datetime | None, tz: ZoneInfo | None = None
) -> datetime | None:
    """Parse a timestamp and express it in UTC (naive values are wall time in `tz`).

    Example:
        "2024-04-07T14:30:00+02:00" -> datetime(2024, 4, 7, 12, 30, tzinfo=UTC)
    """
    parsed = dt_parse(dt_input, tz, return_type=HELPER_RETURN_DATETIME_UTC)
    return cast("datetime | None", parsed)


def dt_parse_time(time_str: str | time | None) -> time | None:
    """Parse a wall-clock column ("HH:MM", "HH:MM:SS" or "HH:MM:SS.fff").

    Returns:
        datetime.time, or None for empty or invalid input.
    """
    if isinstance(time_str, time):
        return time_str
    if not time_str or not isinstance(time_str, str):
        return None

    parts = time_str.strip().split(":")
    if len(parts) not in (2, 3):
        _LOGGER.warning("Invalid time format: %s (expected HH:MM[:SS])", time_str)
        return None

    try:
        seconds = int(float(parts[2])) if len(parts) == 3 else 0
        return time(int(parts[0]), int(parts[1]), seconds)
    except ValueError as exc:
        _LOGGER.warning("Invalid time value: %s: %s", time_str, exc)
        return None


# ==============================================================================
# Formatting
# ==============================================================================


def dt_format(
    dt_obj: datetime,
    return_type: str | None = HELPER_RETURN_DATETIME,
    tz: ZoneInfo | None = None,
) -> datetime | date | str:
    """Convert an aware datetime to the requested HELPER_RETURN_* shape.

    Date-valued shapes use the day in `tz` (the evaluation calendar when
    omitted). HELPER_RETURN_STORED_DATE takes the date in the value's own
    offset: "2024-01-01T00:00:00Z" is Jan 1 in every calendar.
    """
    if return_type == HELPER_RETURN_DATETIME_UTC:
        return dt_obj.astimezone(UTC)
    if return_type == HELPER_RETURN_DATE:
        return dt_local_date(dt_obj, tz)
    if return_type == HELPER_RETURN_STORED_DATE:
        return dt_obj.date()
    if return_type == HELPER_RETURN_ISO_DATETIME:
        return dt_obj.isoformat()
    if return_type == HELPER_RETURN_ISO_DATE:
        return dt_local_date(dt_obj, tz).isoformat()
    return dt_obj


def dt_format_display_date(day: date | None) -> str:
    """Format a calendar date for reason strings ("Jan 02, 2024")."""
    if day is None:
        return DISPLAY_UNKNOWN
    return day.strftime(DISPLAY_DATE_FORMAT)


def dt_format_display_time(wall_time: time | None) -> str:
    """Format a wall-clock time for reason strings ("09:00")."""
    if wall_time is None:
        return DISPLAY_UNKNOWN
    return wall_time.strftime(DISPLAY_TIME_FORMAT)


# ==============================================================================
# Grace Period Durations
# ==============================================================================


def dt_parse_duration(
    duration_str: str | None,
    default_unit: str = TIME_UNIT_MINUTES,
) -> timedelta | None:
    """Parse a duration such as "24h", "1d 6h" or "90".

    Bare numbers use `default_unit`. "0", empty and unparseable strings give
    None, which callers treat as "no duration".
    """
    if not duration_str:
        return None

    tokens = _DURATION_TOKEN.findall(duration_str.lower())
    if not tokens:
        _LOGGER.warning(
            "Invalid duration format: %s (expected e.g. '24h', '1d 6h')", duration_str
        )
        return None

    total = relativedelta()
    for amount, suffix in tokens:
        unit = _DURATION_UNITS.get(suffix, default_unit)
        total += relativedelta(**{unit: int(amount)})

    result = timedelta(days=total.days, hours=total.hours, minutes=total.minutes)
    return result if result > timedelta() else None


def dt_format_duration(td: timedelta | None) -> str:
    """Format a duration in the dt_parse_duration syntax ("1d 6h", "0")."""
    if td is None or td <= timedelta():
        return "0"

    minutes_total = int(td.total_seconds()) // 60
    hours_total, minutes = divmod(minutes_total, 60)
    days, hours = divmod(hours_total, 24)
    parts = [
        f"{value}{suffix}"
        for value, suffix in ((days, "d"), (hours, "h"), (minutes, "m"))
        if value
    ]
    return " ".join(parts) or "0"
