"""Business Day Calendar - Pure predicate and distance functions.

Answers "does this calendar date count" for a task's business-day filter:
- Weekday membership (0=Sunday ... 6=Saturday)
- Optional holiday exclusion through an injected lookup collaborator
- Human-facing distances ("3 business days overdue")

ARCHITECTURE: This is a pure logic engine with NO I/O. The holiday lookup is
a plain callable supplied by the caller; when it is absent or fails,
holiday exclusion is skipped (fails open) so schedules never freeze.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, timedelta
from typing import TYPE_CHECKING

from .. import const

if TYPE_CHECKING:
    from ..data_builders import BusinessDaysConfig

# Returns True when `day` is a holiday in the named calendar
HolidayLookup = Callable[[date, str], bool]


def weekday_index(day: date) -> int:
    """Return the weekday of `day` with 0=Sunday ... 6=Saturday."""
    # date.weekday() is 0=Monday ... 6=Sunday
    return (day.weekday() + 1) % 7


class BusinessDayCalendar:
    """Pure logic for business-day filtering.

    All methods are static - no instance state.
    """

    @staticmethod
    def is_business_day(
        day: date,
        config: BusinessDaysConfig,
        holiday_lookup: HolidayLookup | None = None,
    ) -> bool:
        """Check whether a date satisfies the task's business-day filter.

        Args:
            day: Calendar date to test
            config: The task's business-day configuration
            holiday_lookup: Optional holiday collaborator

        Returns:
            True unconditionally when business_days_only is off; otherwise
            whether the weekday is configured and the date is not a holiday.
        """
        if not config.business_days_only:
            return True

        business_days = config.business_days or frozenset(const.DEFAULT_BUSINESS_DAYS)
        if weekday_index(day) not in business_days:
            return False

        if config.exclude_holidays and config.holiday_calendar:
            return not BusinessDayCalendar._is_holiday(
                day, config.holiday_calendar, holiday_lookup
            )
        return True

    @staticmethod
    def _is_holiday(
        day: date, calendar: str, holiday_lookup: HolidayLookup | None
    ) -> bool:
        """Ask the holiday collaborator, treating any failure as "not a holiday"."""
        if holiday_lookup is None:
            const.LOGGER.debug(
                "No holiday lookup available for calendar '%s', skipping exclusion",
                calendar,
            )
            return False
        try:
            return bool(holiday_lookup(day, calendar))
        except Exception as err:  # pylint: disable=broad-except
            const.LOGGER.warning(
                "Holiday lookup failed for %s in '%s', skipping exclusion: %s",
                day,
                calendar,
                err,
            )
            return False

    @staticmethod
    def business_days_between(
        start: date,
        end: date,
        config: BusinessDaysConfig,
        holiday_lookup: HolidayLookup | None = None,
    ) -> int:
        """Count business days d with start < d <= end.

        Used only for "days overdue" display. Returns 0 when end <= start.

        Examples:
            Mon -> Wed, all days: 2
            Fri -> Mon, Mon-Fri only: 1 (Saturday and Sunday skipped)
        """
        if end <= start:
            return 0
        if not config.business_days_only:
            return (end - start).days

        count = 0
        current = start + timedelta(days=1)
        while current <= end:
            if BusinessDayCalendar.is_business_day(current, config, holiday_lookup):
                count += 1
            current += timedelta(days=1)
        return count

    @staticmethod
    def next_business_day(
        day: date,
        config: BusinessDaysConfig,
        holiday_lookup: HolidayLookup | None = None,
    ) -> date:
        """Return the first business day after `day` (bounded search)."""
        return BusinessDayCalendar._step(day, 1, config, holiday_lookup)

    @staticmethod
    def previous_business_day(
        day: date,
        config: BusinessDaysConfig,
        holiday_lookup: HolidayLookup | None = None,
    ) -> date:
        """Return the last business day before `day` (bounded search)."""
        return BusinessDayCalendar._step(day, -1, config, holiday_lookup)

    @staticmethod
    def _step(
        day: date,
        direction: int,
        config: BusinessDaysConfig,
        holiday_lookup: HolidayLookup | None,
    ) -> date:
        candidate = day + timedelta(days=direction)
        attempts = 0
        while (
            not BusinessDayCalendar.is_business_day(candidate, config, holiday_lookup)
            and attempts < const.MAX_BUSINESS_DAY_ATTEMPTS
        ):
            candidate += timedelta(days=direction)
            attempts += 1
        return candidate

    @staticmethod
    def add_business_days(
        day: date,
        count: int,
        config: BusinessDaysConfig,
        holiday_lookup: HolidayLookup | None = None,
    ) -> date:
        """Move forward `count` business days from `day`."""
        if not config.business_days_only:
            return day + timedelta(days=count)

        current = day
        added = 0
        while added < count:
            current = BusinessDayCalendar.next_business_day(
                current, config, holiday_lookup
            )
            added += 1
        return current

    @staticmethod
    def format_business_days_config(config: BusinessDaysConfig) -> str:
        """Describe the filter for display ("Business days: Monday, Tuesday")."""
        if not config.business_days_only:
            return const.DISPLAY_ALL_DAYS

        # Monday first, Sunday last
        ordered = sorted(config.business_days, key=lambda d: (d - 1) % 7)
        names = ", ".join(const.WEEKDAY_NAMES[d] for d in ordered)
        return f"{const.DISPLAY_BUSINESS_DAYS_PREFIX}: {names}"
