"""Instance Engine - classify one (task, date) instance.

An instance is not stored; its identity is the pair (task id, calendar date),
serialized as an instance key "<task id>_<YYYY-MM-DD>". The key underlies
deduplication and idempotent clearing.

Classification precedence (first match wins):
1. Unpublished task, or no start date        -> INACTIVE
2. Date after the end date                   -> INACTIVE
3. Business-day filter on and not a business day -> INACTIVE
4. Not an occurrence of the schedule         -> INACTIVE
5. Completion recorded on that date          -> COMPLETED
6. Cleared marker for that date              -> CLEARED
7. Date before today                         -> MISSED
8. Date is today and due time passed         -> OVERDUE_TODAY
9. Otherwise                                 -> PENDING

Completion beats clearing and clearing beats missed; changing the order makes
past-due totals double count.

ARCHITECTURE: Pure logic, no I/O. Completion and clearance data arrive
pre-fetched in an InstanceLedger.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import dt_local_date
from .business_day_engine import BusinessDayCalendar
from .schedule_engine import ScheduleEvaluator

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from ..data_builders import ClearedInstanceMarker, CompletionEvent, ScheduledTask
    from ..type_defs import InstanceKey, TaskId
    from .business_day_engine import HolidayLookup


# =============================================================================
# INSTANCE IDENTITY
# =============================================================================


def instance_key(task_id: TaskId, instance_date: date) -> InstanceKey:
    """Serialize an instance identity ("<task id>_<YYYY-MM-DD>")."""
    return f"{task_id}{const.INSTANCE_KEY_SEPARATOR}{instance_date.isoformat()}"


def parse_instance_key(key: InstanceKey) -> tuple[TaskId, date]:
    """Split an instance key back into (task id, date).

    Raises:
        ValueError: The key has no separator or no ISO date suffix.
    """
    task_id, separator, iso_date = key.rpartition(const.INSTANCE_KEY_SEPARATOR)
    if not separator or not task_id:
        raise ValueError(f"Invalid instance key: {key}")
    return task_id, date.fromisoformat(iso_date)


# =============================================================================
# COMPLETION / CLEARANCE LEDGER
# =============================================================================


class InstanceLedger:
    """Read-only index of completions and cleared markers for one pass.

    Completions are bucketed by the local calendar day of `submitted_at`, so
    an instance on day D is completed when a submission falls in
    [start of D, start of D+1) in the evaluation calendar.
    """

    def __init__(
        self,
        completions: Iterable[CompletionEvent] = (),
        cleared: Iterable[ClearedInstanceMarker] = (),
        tz: ZoneInfo | None = None,
    ) -> None:
        """Index completion events and cleared markers.

        Args:
            completions: Submissions for the tasks under evaluation
            cleared: The current user's cleared markers
            tz: Evaluation calendar override (defaults to dt_utils default)
        """
        self._completion_days: dict[TaskId, set[date]] = defaultdict(set)
        for event in completions:
            self._completion_days[event.task_id].add(
                dt_local_date(event.submitted_at, tz)
            )
        self._cleared_keys: set[InstanceKey] = {
            instance_key(marker.task_id, marker.instance_date) for marker in cleared
        }

    def has_completion(self, task_id: TaskId, day: date) -> bool:
        """Check whether any submission for the task falls on `day`."""
        return day in self._completion_days.get(task_id, ())

    def completion_count_between(self, task_id: TaskId, start: date, end: date) -> int:
        """Count distinct completion days in [start, end]."""
        return sum(
            1 for day in self._completion_days.get(task_id, ()) if start <= day <= end
        )

    def is_cleared(self, task_id: TaskId, day: date) -> bool:
        """Check whether the user acknowledged the instance on `day`."""
        return instance_key(task_id, day) in self._cleared_keys

    @property
    def cleared_keys(self) -> frozenset[InstanceKey]:
        """Instance keys the user has already cleared."""
        return frozenset(self._cleared_keys)


# =============================================================================
# INSTANCE STATE RESOLVER
# =============================================================================


class InstanceStateResolver:
    """Pure logic engine classifying one instance into exactly one state.

    All methods are static - no instance state.
    """

    @staticmethod
    def resolve(
        task: ScheduledTask,
        day: date,
        ledger: InstanceLedger,
        now: datetime,
        holiday_lookup: HolidayLookup | None = None,
        tz: ZoneInfo | None = None,
    ) -> str:
        """Classify the instance (task, day).

        Args:
            task: The scheduled task
            day: Calendar date of the instance
            ledger: Pre-fetched completions and cleared markers
            now: Injected current time; "today" is its local calendar day
            holiday_lookup: Optional holiday collaborator
            tz: Evaluation calendar override

        Returns:
            One of the const.INSTANCE_STATE_* values.
        """
        if not task.is_published or task.start_date is None:
            return const.INSTANCE_STATE_INACTIVE
        if task.end_date is not None and day > task.end_date:
            return const.INSTANCE_STATE_INACTIVE
        if task.business_days.business_days_only and not BusinessDayCalendar.is_business_day(
            day, task.business_days, holiday_lookup
        ):
            return const.INSTANCE_STATE_INACTIVE
        if not ScheduleEvaluator.is_date_active(task, day):
            return const.INSTANCE_STATE_INACTIVE

        if ledger.has_completion(task.id, day):
            return const.INSTANCE_STATE_COMPLETED
        if ledger.is_cleared(task.id, day):
            return const.INSTANCE_STATE_CLEARED

        today = dt_local_date(now, tz)
        if day < today:
            return const.INSTANCE_STATE_MISSED
        if day == today and ScheduleEvaluator.has_time_passed(task, day, now, tz):
            return const.INSTANCE_STATE_OVERDUE_TODAY
        return const.INSTANCE_STATE_PENDING

    @staticmethod
    def is_active_state(state: str) -> bool:
        """Check whether a resolved state belongs to an active instance."""
        return state in const.ACTIVE_INSTANCE_STATES
