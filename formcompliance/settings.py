# File: settings.py
"""Engine configuration for the form compliance engine.

Settings arrive as a plain mapping (deployment config, environment loader,
tests) and are validated with a voluptuous schema, the same way service
payloads are validated, before being frozen into ComplianceSettings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time, timedelta
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import voluptuous as vol

from . import const
from .utils import dt_utils
from .utils.dt_utils import TIME_UNIT_HOURS, dt_parse_duration, dt_parse_time


def _coerce_grace_period(value: Any) -> timedelta:
    """Accept a timedelta, a number of hours, or a duration string ("24h")."""
    if isinstance(value, timedelta):
        result: timedelta | None = value
    elif isinstance(value, bool):
        raise vol.Invalid("grace period must be a duration")
    elif isinstance(value, (int, float)):
        result = timedelta(hours=value)
    elif isinstance(value, str):
        result = dt_parse_duration(value, default_unit=TIME_UNIT_HOURS)
    else:
        raise vol.Invalid(f"grace period must be a duration, got {type(value).__name__}")

    if result is None or result <= timedelta():
        raise vol.Invalid(f"grace period must be positive: {value!r}")
    return result


def _coerce_timezone(value: Any) -> ZoneInfo:
    """Resolve an IANA timezone label."""
    if isinstance(value, ZoneInfo):
        return value
    try:
        return ZoneInfo(str(value))
    except (ZoneInfoNotFoundError, ValueError) as err:
        raise vol.Invalid(f"unknown timezone: {value}") from err


def _coerce_time(value: Any) -> time:
    """Resolve a wall-clock time ("09:00" or "09:00:00")."""
    parsed = dt_parse_time(value)
    if parsed is None:
        raise vol.Invalid(f"invalid time of day: {value!r}")
    return parsed


# --- Settings Schema ---
SETTINGS_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.CONF_GRACE_PERIOD, default=const.DEFAULT_GRACE_PERIOD_HOURS
        ): _coerce_grace_period,
        vol.Optional(const.CONF_TIMEZONE, default=const.DEFAULT_TIMEZONE): _coerce_timezone,
        vol.Optional(
            const.CONF_DEFAULT_TIME_OF_DAY, default=const.DEFAULT_SCHEDULE_TIME
        ): _coerce_time,
        vol.Optional(const.CONF_MAX_WALK_DAYS, default=const.DEFAULT_MAX_WALK_DAYS): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
    }
)


@dataclass(frozen=True)
class ComplianceSettings:
    """Validated engine configuration.

    Attributes:
        grace_period: Window after the intended instant before a submission is late
        timezone: Evaluation calendar for local days and wall-clock times
        default_time_of_day: Due time for forms without a schedule time
        max_walk_days: Safety bound on the past-due occurrence walk
    """

    grace_period: timedelta
    timezone: ZoneInfo
    default_time_of_day: time
    max_walk_days: int


def build_settings(raw: dict[str, Any] | None = None) -> ComplianceSettings:
    """Validate a settings mapping and freeze it.

    Raises:
        vol.Invalid: A value failed validation (unknown timezone, zero grace
            period, unknown key, ...).
    """
    data = SETTINGS_SCHEMA(dict(raw or {}))
    return ComplianceSettings(
        grace_period=data[const.CONF_GRACE_PERIOD],
        timezone=data[const.CONF_TIMEZONE],
        default_time_of_day=data[const.CONF_DEFAULT_TIME_OF_DAY],
        max_walk_days=data[const.CONF_MAX_WALK_DAYS],
    )


def apply_settings(settings: ComplianceSettings) -> None:
    """Install the configured timezone as the evaluation calendar."""
    dt_utils.set_default_timezone(settings.timezone)
    const.LOGGER.debug(
        "Applied compliance settings: timezone=%s grace_period=%s",
        settings.timezone,
        dt_utils.dt_format_duration(settings.grace_period),
    )
