"""Overdue Engine - batch categorization of overdue and past-due instances.

Runs the instance resolver over every published task for "today" and over
each task's past occurrences, producing:
- Overdue-Today: today's instance whose due time passed with no completion
- Past-Due: missed instances from earlier dates, not yet cleared
- Summary counts for dashboard views

Past-due rules per schedule type:
- one_time: the start date, checked once
- daily: every occurrence strictly between the start date and today
  (one entry per missed day)
- weekly / monthly: reported once, keyed by the end date, when the schedule
  has ended with no completion anywhere in its range
- custom: never (no derived occurrence rule)

A task may sit in both sets in one run; they are not deduplicated against each
other. total_overdue counts unique task ids across both sets.

ARCHITECTURE: Pure logic, no I/O. Callers fetch completions and cleared markers
first (see managers/overdue_manager.py) and must not call this with
substituted data when a fetch fails.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import dt_format_display_date, dt_format_display_time, dt_local_date
from .business_day_engine import BusinessDayCalendar
from .instance_engine import InstanceStateResolver, instance_key
from .schedule_engine import ScheduleEvaluator

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from ..data_builders import ScheduledTask
    from ..type_defs import (
        InstanceKey,
        OverdueEntryDict,
        OverdueResultDict,
        OverdueStatsDict,
        TaskId,
    )
    from .business_day_engine import HolidayLookup
    from .instance_engine import InstanceLedger


# =============================================================================
# RESULT DATA STRUCTURES
# =============================================================================


@dataclass(frozen=True)
class OverdueEntry:
    """One overdue-today or past-due instance.

    Attributes:
        task_id: Task the instance belongs to
        title: Task title for display
        instance_date: Calendar date of the instance
        category: const.OVERDUE_CATEGORY_TODAY or const.OVERDUE_CATEGORY_PAST
        days_overdue: Business days between the instance and today (min 1)
        reason: Human-readable explanation
    """

    task_id: TaskId
    title: str
    instance_date: date
    category: str
    days_overdue: int
    reason: str

    @property
    def instance_key(self) -> InstanceKey:
        """Identity of the instance this entry reports."""
        return instance_key(self.task_id, self.instance_date)

    def as_dict(self) -> OverdueEntryDict:
        """Serialize for views."""
        return {
            "task_id": self.task_id,
            "title": self.title,
            "instance_date": self.instance_date.isoformat(),
            "instance_key": self.instance_key,
            "category": self.category,
            "days_overdue": self.days_overdue,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class OverdueStats:
    """Summary counts of one categorization pass."""

    overdue_today: int = 0
    past_due: int = 0
    total_overdue: int = 0

    def as_dict(self) -> OverdueStatsDict:
        """Serialize for views."""
        return {
            "overdue_today": self.overdue_today,
            "past_due": self.past_due,
            "total_overdue": self.total_overdue,
        }


@dataclass(frozen=True)
class OverdueResult:
    """Full output of OverdueCategorizer.categorize()."""

    overdue_today: list[OverdueEntry] = field(default_factory=list)
    past_due: list[OverdueEntry] = field(default_factory=list)
    stats: OverdueStats = field(default_factory=OverdueStats)

    @property
    def past_due_keys(self) -> frozenset[InstanceKey]:
        """Instance keys of every past-due entry (the clearable set)."""
        return frozenset(entry.instance_key for entry in self.past_due)

    def as_dict(self) -> OverdueResultDict:
        """Serialize for views."""
        return {
            "overdue_today": [entry.as_dict() for entry in self.overdue_today],
            "past_due": [entry.as_dict() for entry in self.past_due],
            "stats": self.stats.as_dict(),
        }


# =============================================================================
# OVERDUE CATEGORIZER
# =============================================================================


class OverdueCategorizer:
    """Pure logic engine for overdue categorization.

    All methods are static - no instance state.
    """

    @staticmethod
    def categorize(
        tasks: Iterable[ScheduledTask],
        ledger: InstanceLedger,
        now: datetime,
        holiday_lookup: HolidayLookup | None = None,
        tz: ZoneInfo | None = None,
        max_walk_days: int = const.DEFAULT_MAX_WALK_DAYS,
    ) -> OverdueResult:
        """Categorize every published task's instances relative to `now`.

        Args:
            tasks: Scheduled tasks (unpublished ones are skipped)
            ledger: Freshly fetched completions and the user's cleared markers
            now: Injected current time
            holiday_lookup: Optional holiday collaborator
            tz: Evaluation calendar override
            max_walk_days: Bound on how far back the daily walk looks

        Returns:
            OverdueResult with both sets and summary counts.
        """
        today = dt_local_date(now, tz)
        overdue_today: list[OverdueEntry] = []
        past_due: list[OverdueEntry] = []

        for task in tasks:
            if not task.is_published:
                continue
            if task.start_date is None:
                const.LOGGER.debug(
                    "Task %s has no start date, excluded from overdue evaluation",
                    task.id,
                )
                continue

            state = InstanceStateResolver.resolve(
                task, today, ledger, now, holiday_lookup, tz
            )
            if state == const.INSTANCE_STATE_OVERDUE_TODAY:
                overdue_today.append(
                    OverdueCategorizer._build_entry(
                        task, today, today, const.OVERDUE_CATEGORY_TODAY, holiday_lookup
                    )
                )

            past_due.extend(
                OverdueCategorizer._past_due_entries(
                    task, ledger, now, today, holiday_lookup, tz, max_walk_days
                )
            )

        task_ids = {entry.task_id for entry in overdue_today} | {
            entry.task_id for entry in past_due
        }
        stats = OverdueStats(
            overdue_today=len(overdue_today),
            past_due=len(past_due),
            total_overdue=len(task_ids),
        )
        const.LOGGER.debug(
            "Overdue categorization for %s: today=%s past=%s total=%s",
            today,
            stats.overdue_today,
            stats.past_due,
            stats.total_overdue,
        )
        return OverdueResult(overdue_today=overdue_today, past_due=past_due, stats=stats)

    @staticmethod
    def tasks_due_today(
        tasks: Iterable[ScheduledTask],
        ledger: InstanceLedger,
        now: datetime,
        holiday_lookup: HolidayLookup | None = None,
        tz: ZoneInfo | None = None,
    ) -> list[ScheduledTask]:
        """Return published tasks with an active instance today, in any state."""
        today = dt_local_date(now, tz)
        return [
            task
            for task in tasks
            if InstanceStateResolver.resolve(task, today, ledger, now, holiday_lookup, tz)
            != const.INSTANCE_STATE_INACTIVE
        ]

    # =========================================================================
    # Private: past-due detection
    # =========================================================================

    @staticmethod
    def _past_due_entries(
        task: ScheduledTask,
        ledger: InstanceLedger,
        now: datetime,
        today: date,
        holiday_lookup: HolidayLookup | None,
        tz: ZoneInfo | None,
        max_walk_days: int,
    ) -> list[OverdueEntry]:
        start = task.start_date
        assert start is not None

        if task.schedule_type == const.SCHEDULE_TYPE_ONE_TIME:
            state = InstanceStateResolver.resolve(
                task, start, ledger, now, holiday_lookup, tz
            )
            if state != const.INSTANCE_STATE_MISSED:
                return []
            return [
                OverdueCategorizer._build_entry(
                    task, start, today, const.OVERDUE_CATEGORY_PAST, holiday_lookup
                )
            ]

        if task.schedule_type == const.SCHEDULE_TYPE_DAILY:
            return OverdueCategorizer._walk_missed_occurrences(
                task, ledger, now, today, holiday_lookup, tz, max_walk_days
            )

        if task.schedule_type in const.ENDED_SCHEDULE_TYPES:
            entry = OverdueCategorizer._ended_schedule_entry(
                task, ledger, today, holiday_lookup
            )
            return [entry] if entry else []

        return []

    @staticmethod
    def _walk_missed_occurrences(
        task: ScheduledTask,
        ledger: InstanceLedger,
        now: datetime,
        today: date,
        holiday_lookup: HolidayLookup | None,
        tz: ZoneInfo | None,
        max_walk_days: int,
    ) -> list[OverdueEntry]:
        """One entry per missed occurrence strictly between start and today."""
        start = task.start_date
        assert start is not None

        walk_after = start
        earliest = today - timedelta(days=max_walk_days + 1)
        if walk_after < earliest:
            const.LOGGER.warning(
                "Task %s: past-due walk limited to the last %s days",
                task.id,
                max_walk_days,
            )
            walk_after = earliest

        entries: list[OverdueEntry] = []
        for day in ScheduleEvaluator.occurrence_dates(task, walk_after, today):
            state = InstanceStateResolver.resolve(
                task, day, ledger, now, holiday_lookup, tz
            )
            if state == const.INSTANCE_STATE_MISSED:
                entries.append(
                    OverdueCategorizer._build_entry(
                        task, day, today, const.OVERDUE_CATEGORY_PAST, holiday_lookup
                    )
                )
        return entries

    @staticmethod
    def _ended_schedule_entry(
        task: ScheduledTask,
        ledger: InstanceLedger,
        today: date,
        holiday_lookup: HolidayLookup | None,
    ) -> OverdueEntry | None:
        """Report an ended weekly/monthly schedule once if it was never completed."""
        start, end = task.start_date, task.end_date
        if start is None or end is None or end >= today or start > end:
            return None
        if ledger.completion_count_between(task.id, start, end) > 0:
            return None
        if ledger.is_cleared(task.id, end):
            return None
        return OverdueCategorizer._build_entry(
            task, end, today, const.OVERDUE_CATEGORY_PAST, holiday_lookup
        )

    # =========================================================================
    # Private: display fields
    # =========================================================================

    @staticmethod
    def _build_entry(
        task: ScheduledTask,
        instance_date: date,
        today: date,
        category: str,
        holiday_lookup: HolidayLookup | None,
    ) -> OverdueEntry:
        days = BusinessDayCalendar.business_days_between(
            instance_date, today, task.business_days, holiday_lookup
        )
        return OverdueEntry(
            task_id=task.id,
            title=task.title,
            instance_date=instance_date,
            category=category,
            days_overdue=max(1, days),
            reason=OverdueCategorizer.build_reason(task, category, instance_date),
        )

    @staticmethod
    def build_reason(task: ScheduledTask, category: str, instance_date: date) -> str:
        """Explain an entry: schedule type, due time and business-day note.

        Examples:
            daily, today  -> "Due at 09:00 - No response today"
            daily, past   -> "Missed response for Jan 02, 2024"
            weekly, past  -> "Ended Jan 31, 2024 (business days only)"
        """
        schedule_type = task.schedule_type
        time_str = dt_format_display_time(task.time_of_day)
        date_str = dt_format_display_date(instance_date)

        if category == const.OVERDUE_CATEGORY_TODAY:
            if schedule_type == const.SCHEDULE_TYPE_DAILY:
                reason = const.REASON_TODAY_DAILY.format(time=time_str)
            elif schedule_type == const.SCHEDULE_TYPE_ONE_TIME:
                reason = const.REASON_TODAY_ONE_TIME.format(time=time_str)
            else:
                reason = const.REASON_TODAY_DEFAULT.format(time=time_str)
        elif schedule_type == const.SCHEDULE_TYPE_DAILY:
            reason = const.REASON_PAST_DAILY.format(date=date_str)
        elif schedule_type == const.SCHEDULE_TYPE_ONE_TIME:
            reason = const.REASON_PAST_ONE_TIME.format(date=date_str)
        elif schedule_type in const.ENDED_SCHEDULE_TYPES:
            reason = const.REASON_PAST_ENDED.format(date=date_str)
        else:
            reason = const.REASON_PAST_DEFAULT

        if task.business_days.business_days_only:
            reason += const.REASON_BUSINESS_DAYS_SUFFIX
        return reason
