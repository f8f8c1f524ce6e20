"""Schedule Engine - recurrence and due-time evaluation for one task.

Answers three questions for a ScheduledTask and a calendar date, without
looking at completion records:
1. Is the date a valid occurrence (within range and matching the pattern)?
2. What instant is the instance due (date + time of day, local calendar)?
3. Has that instant passed at `now`?

Occurrence generation for a date range uses `dateutil.rrule`:
- DAILY: every date from the start date
- WEEKLY: same weekday as the start date
- MONTHLY: same day-of-month as the start date (months lacking it are skipped,
  matching is_date_active)

Business-day filtering is NOT applied here; callers (the instance resolver)
apply it so "active" and "business day" stay separate questions.

IMPORTANT: This module must NOT import from managers or store.
Only import from const.py, data_builders.py (types), and utils.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, ClassVar

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, rrule

from .. import const
from ..utils.dt_utils import as_utc, dt_combine_local

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from ..data_builders import ScheduledTask


class ScheduleEvaluator:
    """Pure recurrence logic for scheduled tasks.

    All methods are static - no instance state. Separating "is this date an
    occurrence" from "has its due time passed" lets one evaluator answer both
    "due today" (active, time not passed) and "overdue today" (active, time
    passed); the two are disjoint for any (task, date).
    """

    # Mapping from schedule types to rrule frequencies
    SCHEDULE_TO_RRULE: ClassVar[dict[str, int]] = {
        const.SCHEDULE_TYPE_DAILY: DAILY,
        const.SCHEDULE_TYPE_WEEKLY: WEEKLY,
        const.SCHEDULE_TYPE_MONTHLY: MONTHLY,
    }

    @staticmethod
    def in_range(task: ScheduledTask, day: date) -> bool:
        """Check start_date <= day <= end_date (missing end is unbounded)."""
        if task.start_date is None or day < task.start_date:
            return False
        return task.end_date is None or day <= task.end_date

    @staticmethod
    def is_date_active(task: ScheduledTask, day: date) -> bool:
        """Check whether `day` is an occurrence of the task's schedule.

        Args:
            task: The scheduled task
            day: Calendar date in the evaluation calendar

        Returns:
            True when the date is in range and matches the recurrence pattern.
            Custom schedules are never active (their cadence label is display-only).
        """
        if not ScheduleEvaluator.in_range(task, day):
            return False

        start = task.start_date
        assert start is not None  # guaranteed by in_range

        schedule_type = task.schedule_type
        if schedule_type == const.SCHEDULE_TYPE_ONE_TIME:
            return day == start
        if schedule_type == const.SCHEDULE_TYPE_DAILY:
            return True
        if schedule_type == const.SCHEDULE_TYPE_WEEKLY:
            return day.weekday() == start.weekday()
        if schedule_type == const.SCHEDULE_TYPE_MONTHLY:
            return day.day == start.day
        return False

    @staticmethod
    def scheduled_instant(
        task: ScheduledTask, day: date, tz: ZoneInfo | None = None
    ) -> datetime:
        """Return `day` combined with the task's time of day (timezone-aware)."""
        return dt_combine_local(day, task.time_of_day, tz)

    @staticmethod
    def has_time_passed(
        task: ScheduledTask, day: date, now: datetime, tz: ZoneInfo | None = None
    ) -> bool:
        """Check whether `now` is strictly after the scheduled instant on `day`."""
        instant = ScheduleEvaluator.scheduled_instant(task, day, tz)
        return as_utc(now, tz) > as_utc(instant, tz)

    @staticmethod
    def is_due(
        task: ScheduledTask, day: date, now: datetime, tz: ZoneInfo | None = None
    ) -> bool:
        """Active on `day` and the due time has not passed yet."""
        return ScheduleEvaluator.is_date_active(
            task, day
        ) and not ScheduleEvaluator.has_time_passed(task, day, now, tz)

    @staticmethod
    def is_past_due_time(
        task: ScheduledTask, day: date, now: datetime, tz: ZoneInfo | None = None
    ) -> bool:
        """Active on `day` and the due time has passed."""
        return ScheduleEvaluator.is_date_active(
            task, day
        ) and ScheduleEvaluator.has_time_passed(task, day, now, tz)

    @staticmethod
    def occurrence_dates(task: ScheduledTask, after: date, before: date) -> list[date]:
        """Generate occurrence dates strictly between `after` and `before`.

        The range is further clipped to the task's start and end dates.
        Each date is produced once, in ascending order.

        Examples:
            Daily from Jan 1, after=Jan 1, before=Jan 4 -> [Jan 2, Jan 3]
            Weekly from Mon Jan 1, after=Jan 1, before=Jan 22 -> [Jan 8, Jan 15]
        """
        start = task.start_date
        if start is None:
            return []

        first = max(after + timedelta(days=1), start)
        last = before - timedelta(days=1)
        if task.end_date is not None:
            last = min(last, task.end_date)
        if first > last:
            return []

        if task.schedule_type == const.SCHEDULE_TYPE_ONE_TIME:
            return [start] if first <= start <= last else []

        freq = ScheduleEvaluator.SCHEDULE_TO_RRULE.get(task.schedule_type)
        if freq is None:
            return []

        dtstart = datetime.combine(start, time.min)
        kwargs: dict[str, int] = {}
        if freq == MONTHLY:
            # Skip months without the start day instead of clamping
            kwargs["bymonthday"] = start.day
        # Type stubs expect Literal frequencies, but rrule accepts int at runtime
        rule = rrule(
            freq,  # type: ignore[arg-type]
            dtstart=dtstart,
            until=datetime.combine(last, time.min),
            **kwargs,
        )
        return [
            occurrence.date()
            for occurrence in rule.between(
                datetime.combine(first, time.min),
                datetime.combine(last, time.min),
                inc=True,
            )
        ]
