"""Type definitions for form compliance record contracts.

ARCHITECTURE DECISION: TypedDict AT THE EDGES, DATACLASSES INSIDE
=================================================================

Records crossing the storage boundary (forms, responses, cleared markers)
are plain mappings whose keys are fixed by the backend columns, so they are
described here as TypedDicts. Engines never read these mappings directly:
data_builders.py converts them into the frozen dataclasses the engines
operate on (ScheduledTask, BusinessDaysConfig, CompletionEvent, ...).

NOTE: TypedDict is STATIC ANALYSIS ONLY. All runtime normalization
(null checks, defaults, malformed blobs) lives in data_builders.py.

IMPORTANT: This file must NOT import from engines, managers or store.
Only import from typing (type machinery).
"""

from typing import Any, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

TaskId = str  # UUID string
UserId = str  # UUID string
InstanceKey = str  # "<task id>_<YYYY-MM-DD>"
ISODatetime = str  # ISO 8601 datetime string "2024-01-18T12:30:00+00:00"
ISODate = str  # ISO 8601 date string (no time) "2024-01-18"


# =============================================================================
# Storage Records
# =============================================================================


class FormRecord(TypedDict):
    """A form row as returned by the persistence backend.

    Only `id` is guaranteed; every schedule column may be NULL.
    """

    id: TaskId
    title: NotRequired[str | None]
    status: NotRequired[str | None]
    schedule_type: NotRequired[str | None]
    schedule_start_date: NotRequired[ISODatetime | ISODate | None]
    schedule_end_date: NotRequired[ISODatetime | ISODate | None]
    schedule_time: NotRequired[str | None]  # "HH:MM" or "HH:MM:SS"
    schedule_timezone: NotRequired[str | None]
    schedule_frequency: NotRequired[str | None]  # custom cadence label
    business_days_only: NotRequired[bool | None]
    business_days: NotRequired[Any]  # untyped JSON blob, list[int] when well formed
    exclude_holidays: NotRequired[bool | None]
    holiday_calendar: NotRequired[str | None]


class ResponseRecord(TypedDict):
    """A form submission row."""

    form_id: TaskId
    submitted_at: ISODatetime
    id: NotRequired[str]
    intended_submission_date: NotRequired[ISODatetime | None]
    is_late_submission: NotRequired[bool | None]
    compliance_notes: NotRequired[str | None]


class ClearedInstanceRecord(TypedDict):
    """A persisted acknowledgment of a missed instance.

    Unique on (user_id, form_id, instance_date).
    """

    user_id: UserId
    form_id: TaskId
    instance_date: ISODate
    cleared_at: NotRequired[ISODatetime]


# =============================================================================
# View Contracts
# =============================================================================


class OverdueStatsDict(TypedDict):
    """Summary counts consumed by dashboard views."""

    overdue_today: int
    past_due: int
    total_overdue: int


class OverdueEntryDict(TypedDict):
    """One overdue or past-due instance, serialized for views."""

    task_id: TaskId
    title: str
    instance_date: ISODate
    instance_key: InstanceKey
    category: str
    days_overdue: int
    reason: str


class OverdueResultDict(TypedDict):
    """Full categorizer output, serialized for views."""

    overdue_today: list[OverdueEntryDict]
    past_due: list[OverdueEntryDict]
    stats: OverdueStatsDict


class ComplianceSummaryDict(TypedDict):
    """Compliance report totals."""

    total_responses: int
    on_time_responses: int
    late_responses: int
    compliance_rate: float
