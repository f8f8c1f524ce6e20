"""Record normalization helpers.

This module is the SINGLE SOURCE OF TRUTH for:
- Converting storage records (type_defs.py TypedDicts) into the frozen
  dataclasses the engines operate on
- Schedule field defaults (time of day, business days, schedule type)
- The validation errors raised while doing so

### Build Functions
Each record type has a `build_<thing>()` function that:
- Takes one raw mapping from the storage collaborator
- Applies field defaults
- Raises ConfigurationError when a required field is missing or unparseable

Each also has a plural `build_<things>()` that absorbs ConfigurationError,
logs it, and excludes the offending record. Bad rows never abort a pass.

### Business Days Blob
`business_days` is stored as untyped JSON. normalize_business_days() always
returns a usable weekday set: a malformed or empty blob is replaced by the
Monday-Friday default and logged (MalformedScheduleError never escapes).

Consumers:
- managers/overdue_manager.py, managers/submission_manager.py
- tests (factories build records, not dataclasses)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import TYPE_CHECKING, Any, cast

from . import const
from .utils.dt_utils import (
    HELPER_RETURN_ISO_DATETIME,
    HELPER_RETURN_STORED_DATE,
    dt_parse,
    dt_parse_time,
    dt_to_utc,
)

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from .type_defs import (
        ClearedInstanceRecord,
        FormRecord,
        ResponseRecord,
        TaskId,
        UserId,
    )


# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class ConfigurationError(Exception):
    """A record is missing, or carries an unparseable, required field.

    Not fatal: batch builders exclude the record and continue.

    Attributes:
        field: The DATA_* key of the offending field
        record_id: Identifier of the record, when known
    """

    def __init__(self, field: str, record_id: str | None = None) -> None:
        """Initialize ConfigurationError.

        Args:
            field: The DATA_* key of the offending field
            record_id: Identifier of the record, when known
        """
        self.field = field
        self.record_id = record_id
        super().__init__(f"Record {record_id or '<unknown>'}: invalid or missing {field}")


class MalformedScheduleError(ValueError):
    """The stored business-days blob is not a list of weekday indices."""

    def __init__(self, value: Any) -> None:
        """Initialize MalformedScheduleError with the offending value."""
        self.value = value
        super().__init__(f"Malformed business days value: {value!r}")


# ==============================================================================
# ENGINE DATA STRUCTURES
# ==============================================================================


@dataclass(frozen=True)
class BusinessDaysConfig:
    """Business-day filter of one task.

    Attributes:
        business_days_only: When False every calendar day counts
        business_days: Weekday indices, 0=Sunday ... 6=Saturday
        exclude_holidays: Ask the holiday lookup collaborator as well
        holiday_calendar: Opaque calendar name passed to that collaborator
    """

    business_days_only: bool = False
    business_days: frozenset[int] = frozenset(const.DEFAULT_BUSINESS_DAYS)
    exclude_holidays: bool = False
    holiday_calendar: str | None = None


@dataclass(frozen=True)
class ScheduledTask:
    """Due-date configuration of one form.

    A task with no start_date never produces a due or overdue instance.
    """

    id: TaskId
    status: str = const.DEFAULT_FORM_STATUS
    schedule_type: str = const.DEFAULT_SCHEDULE_TYPE
    start_date: date | None = None
    end_date: date | None = None
    time_of_day: time = time(9, 0)
    title: str = ""
    timezone: str | None = None  # advisory only
    frequency: str | None = None  # custom cadence label, display only
    business_days: BusinessDaysConfig = field(default_factory=BusinessDaysConfig)

    @property
    def is_published(self) -> bool:
        """Only published tasks take part in overdue and compliance logic."""
        return self.status == const.FORM_STATUS_PUBLISHED


@dataclass(frozen=True)
class CompletionEvent:
    """A recorded submission for a task."""

    task_id: TaskId
    submitted_at: datetime


@dataclass(frozen=True)
class ClearedInstanceMarker:
    """A user's acknowledgment of one missed instance."""

    user_id: UserId
    task_id: TaskId
    instance_date: date


# ==============================================================================
# HELPER FUNCTIONS FOR FIELD NORMALIZATION
# ==============================================================================


def _parse_optional_date(
    record: dict[str, Any], key: str, record_id: str | None
) -> date | None:
    """Parse an optional date column; present-but-unparseable is an error.

    The date is taken as stored: "2024-01-01T00:00:00.000Z" (a picked date
    saved as UTC midnight) is Jan 1 whatever the evaluation calendar.
    """
    raw = record.get(key)
    if raw in (None, ""):
        return None
    parsed = dt_parse(raw, return_type=HELPER_RETURN_STORED_DATE)
    if parsed is None:
        raise ConfigurationError(key, record_id)
    return cast("date", parsed)


def validate_business_days(value: Any) -> frozenset[int]:
    """Validate a business-days blob.

    Invalid entries (non-integers, booleans, values outside 0-6) are dropped.

    Raises:
        MalformedScheduleError: value is not a list/tuple/set, or no valid
            weekday remains after filtering.
    """
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise MalformedScheduleError(value)

    valid = [
        d for d in value if isinstance(d, int) and not isinstance(d, bool) and 0 <= d <= 6
    ]
    if not valid:
        raise MalformedScheduleError(value)
    if len(valid) != len(value):
        const.LOGGER.warning(
            "Ignoring invalid weekday entries in business days: %s", value
        )
    return frozenset(valid)


def normalize_business_days(value: Any, record_id: str | None = None) -> frozenset[int]:
    """Return a usable weekday set, falling back to Monday-Friday.

    A missing blob silently uses the default. A malformed one uses the
    default and logs a warning; an empty set would freeze every schedule.
    """
    if value is None:
        return frozenset(const.DEFAULT_BUSINESS_DAYS)
    try:
        return validate_business_days(value)
    except MalformedScheduleError as err:
        const.LOGGER.warning(
            "Form %s: %s - using default business days (Mon-Fri)", record_id, err
        )
        return frozenset(const.DEFAULT_BUSINESS_DAYS)


# ==============================================================================
# BUILD FUNCTIONS
# ==============================================================================


def build_business_days_config(record: FormRecord | dict[str, Any]) -> BusinessDaysConfig:
    """Build the business-day filter of a form record."""
    record_id = record.get(const.DATA_FORM_ID)
    return BusinessDaysConfig(
        business_days_only=bool(record.get(const.DATA_FORM_BUSINESS_DAYS_ONLY)),
        business_days=normalize_business_days(
            record.get(const.DATA_FORM_BUSINESS_DAYS), record_id
        ),
        exclude_holidays=bool(record.get(const.DATA_FORM_EXCLUDE_HOLIDAYS)),
        holiday_calendar=record.get(const.DATA_FORM_HOLIDAY_CALENDAR) or None,
    )


def build_scheduled_task(
    record: FormRecord | dict[str, Any],
    default_time_of_day: time | None = None,
) -> ScheduledTask:
    """Build a ScheduledTask from a form record.

    Args:
        record: Raw form row
        default_time_of_day: Wall-clock time for rows with no schedule_time
            (defaults to const.DEFAULT_SCHEDULE_TIME)

    Returns:
        ScheduledTask. start_date is None when the row has no start date;
        such a task is kept but never produces an instance.

    Raises:
        ConfigurationError: missing id, or an unparseable start/end date.
    """
    data = cast("dict[str, Any]", record)
    record_id = data.get(const.DATA_FORM_ID)
    if not record_id:
        raise ConfigurationError(const.DATA_FORM_ID)
    record_id = str(record_id)

    start_date = _parse_optional_date(data, const.DATA_FORM_SCHEDULE_START_DATE, record_id)
    end_date = _parse_optional_date(data, const.DATA_FORM_SCHEDULE_END_DATE, record_id)

    schedule_type = data.get(const.DATA_FORM_SCHEDULE_TYPE) or const.DEFAULT_SCHEDULE_TYPE
    if schedule_type not in const.SCHEDULE_TYPES:
        const.LOGGER.warning(
            "Form %s: unknown schedule type '%s', treating as custom",
            record_id,
            schedule_type,
        )
        schedule_type = const.SCHEDULE_TYPE_CUSTOM

    fallback_time = default_time_of_day or cast(
        "time", dt_parse_time(const.DEFAULT_SCHEDULE_TIME)
    )
    raw_time = data.get(const.DATA_FORM_SCHEDULE_TIME)
    time_of_day = dt_parse_time(raw_time) if raw_time else None
    if raw_time and time_of_day is None:
        const.LOGGER.warning(
            "Form %s: invalid schedule time '%s', using %s",
            record_id,
            raw_time,
            fallback_time,
        )

    return ScheduledTask(
        id=record_id,
        status=data.get(const.DATA_FORM_STATUS) or const.DEFAULT_FORM_STATUS,
        schedule_type=schedule_type,
        start_date=start_date,
        end_date=end_date,
        time_of_day=time_of_day or fallback_time,
        title=data.get(const.DATA_FORM_TITLE) or "",
        timezone=data.get(const.DATA_FORM_SCHEDULE_TIMEZONE) or None,
        frequency=data.get(const.DATA_FORM_SCHEDULE_FREQUENCY) or None,
        business_days=build_business_days_config(data),
    )


def build_scheduled_tasks(
    records: Iterable[FormRecord | dict[str, Any]],
    default_time_of_day: time | None = None,
) -> list[ScheduledTask]:
    """Build tasks for every usable record, excluding broken ones."""
    tasks: list[ScheduledTask] = []
    for record in records:
        try:
            tasks.append(build_scheduled_task(record, default_time_of_day))
        except ConfigurationError as err:
            const.LOGGER.warning("Excluding form from schedule evaluation: %s", err)
    return tasks


def build_completion_event(
    record: ResponseRecord | dict[str, Any], tz: ZoneInfo | None = None
) -> CompletionEvent:
    """Build a CompletionEvent from a response record.

    A naive submitted_at is wall time in `tz`.

    Raises:
        ConfigurationError: missing form id or unparseable submitted_at.
    """
    task_id = record.get(const.DATA_RESPONSE_FORM_ID)
    record_id = record.get(const.DATA_RESPONSE_ID)
    if not task_id:
        raise ConfigurationError(const.DATA_RESPONSE_FORM_ID, record_id)
    submitted_at = dt_to_utc(record.get(const.DATA_RESPONSE_SUBMITTED_AT), tz)
    if submitted_at is None:
        raise ConfigurationError(const.DATA_RESPONSE_SUBMITTED_AT, record_id)
    return CompletionEvent(task_id=str(task_id), submitted_at=submitted_at)


def build_completion_events(
    records: Iterable[ResponseRecord | dict[str, Any]],
    tz: ZoneInfo | None = None,
) -> list[CompletionEvent]:
    """Build completion events, excluding rows without a usable timestamp."""
    events: list[CompletionEvent] = []
    for record in records:
        try:
            events.append(build_completion_event(record, tz))
        except ConfigurationError as err:
            const.LOGGER.warning("Ignoring response record: %s", err)
    return events


def build_cleared_marker(
    record: ClearedInstanceRecord | dict[str, Any],
) -> ClearedInstanceMarker:
    """Build a ClearedInstanceMarker from a cleared-instance record.

    Raises:
        ConfigurationError: missing user/form id or unparseable instance date.
    """
    user_id = record.get(const.DATA_CLEARED_USER_ID)
    task_id = record.get(const.DATA_CLEARED_FORM_ID)
    if not user_id:
        raise ConfigurationError(const.DATA_CLEARED_USER_ID)
    if not task_id:
        raise ConfigurationError(const.DATA_CLEARED_FORM_ID)
    instance_date = _parse_optional_date(
        cast("dict[str, Any]", record), const.DATA_CLEARED_INSTANCE_DATE, str(task_id)
    )
    if instance_date is None:
        raise ConfigurationError(const.DATA_CLEARED_INSTANCE_DATE, str(task_id))
    return ClearedInstanceMarker(
        user_id=str(user_id), task_id=str(task_id), instance_date=instance_date
    )


def build_cleared_markers(
    records: Iterable[ClearedInstanceRecord | dict[str, Any]],
) -> list[ClearedInstanceMarker]:
    """Build cleared markers, excluding unusable rows."""
    markers: list[ClearedInstanceMarker] = []
    for record in records:
        try:
            markers.append(build_cleared_marker(record))
        except ConfigurationError as err:
            const.LOGGER.warning("Ignoring cleared instance record: %s", err)
    return markers


def build_cleared_record(
    marker: ClearedInstanceMarker, cleared_at: datetime
) -> ClearedInstanceRecord:
    """Serialize a marker for the storage collaborator's upsert."""
    return {
        const.DATA_CLEARED_USER_ID: marker.user_id,
        const.DATA_CLEARED_FORM_ID: marker.task_id,
        const.DATA_CLEARED_INSTANCE_DATE: marker.instance_date.isoformat(),
        const.DATA_CLEARED_AT: cast(
            "str", dt_parse(cleared_at, return_type=HELPER_RETURN_ISO_DATETIME)
        ),
    }  # type: ignore[return-value]
