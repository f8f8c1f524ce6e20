"""Test helpers for form compliance tests.

Factories build raw storage records (the shape the backend returns) and run
them through data_builders, so tests exercise the same normalization the
managers do:

    from tests.helpers import make_form_record, make_task, make_response, utc_dt

Dates used across the suite: 2024-01-01 is a Monday.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

from formcompliance import const
from formcompliance.data_builders import (
    ClearedInstanceMarker,
    CompletionEvent,
    ScheduledTask,
    build_scheduled_task,
)
from formcompliance.engines.instance_engine import InstanceLedger

TASK_ID = "form-daily"
USER_ID = "user-1"


def utc_dt(
    year: int, month: int, day: int, hour: int = 0, minute: int = 0
) -> datetime:
    """Create a UTC datetime for testing."""
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


def make_form_record(**overrides: Any) -> dict[str, Any]:
    """Return a published daily form record starting 2024-01-01 at 09:00."""
    record: dict[str, Any] = {
        const.DATA_FORM_ID: TASK_ID,
        const.DATA_FORM_TITLE: "Daily Safety Checklist",
        const.DATA_FORM_STATUS: const.FORM_STATUS_PUBLISHED,
        const.DATA_FORM_SCHEDULE_TYPE: const.SCHEDULE_TYPE_DAILY,
        const.DATA_FORM_SCHEDULE_START_DATE: "2024-01-01T09:00:00",
        const.DATA_FORM_SCHEDULE_END_DATE: None,
        const.DATA_FORM_SCHEDULE_TIME: "09:00:00",
        const.DATA_FORM_SCHEDULE_TIMEZONE: "UTC",
        const.DATA_FORM_BUSINESS_DAYS_ONLY: False,
        const.DATA_FORM_BUSINESS_DAYS: [1, 2, 3, 4, 5],
        const.DATA_FORM_EXCLUDE_HOLIDAYS: False,
        const.DATA_FORM_HOLIDAY_CALENDAR: None,
    }
    record.update(overrides)
    return record


def make_task(**overrides: Any) -> ScheduledTask:
    """Build a ScheduledTask from make_form_record() overrides."""
    return build_scheduled_task(make_form_record(**overrides))


def make_response(
    submitted_at: datetime | str, form_id: str = TASK_ID, **extra: Any
) -> dict[str, Any]:
    """Return a response record."""
    value = submitted_at.isoformat() if isinstance(submitted_at, datetime) else submitted_at
    return {
        const.DATA_RESPONSE_FORM_ID: form_id,
        const.DATA_RESPONSE_SUBMITTED_AT: value,
        **extra,
    }


def make_ledger(
    completions: list[tuple[str, datetime]] | None = None,
    cleared: list[tuple[str, date]] | None = None,
) -> InstanceLedger:
    """Build a ledger from (task id, submitted_at) and (task id, date) pairs."""
    return InstanceLedger(
        [CompletionEvent(task_id=task_id, submitted_at=ts) for task_id, ts in completions or []],
        [
            ClearedInstanceMarker(user_id=USER_ID, task_id=task_id, instance_date=day)
            for task_id, day in cleared or []
        ],
    )


__all__ = [
    "TASK_ID",
    "USER_ID",
    "make_form_record",
    "make_ledger",
    "make_response",
    "make_task",
    "utc_dt",
]
