"""Tests for instance identity, InstanceLedger and InstanceStateResolver."""

from __future__ import annotations

from datetime import date
from zoneinfo import ZoneInfo

import pytest

from formcompliance import const
from formcompliance.data_builders import CompletionEvent, ScheduledTask
from formcompliance.engines.instance_engine import (
    InstanceLedger,
    InstanceStateResolver,
    instance_key,
    parse_instance_key,
)
from tests.helpers import TASK_ID, make_ledger, make_task, utc_dt

JAN_2 = date(2024, 1, 2)
JAN_4 = date(2024, 1, 4)


# =============================================================================
# TEST: INSTANCE KEYS
# =============================================================================


class TestInstanceKeys:
    """Instance key serialization."""

    def test_key_format(self) -> None:
        """Keys are "<task id>_<YYYY-MM-DD>"."""
        assert instance_key("form-1", JAN_2) == "form-1_2024-01-02"

    def test_task_id_with_separator_round_trips(self) -> None:
        """Task ids may themselves contain the separator."""
        assert parse_instance_key("site_a_checklist_2024-01-02") == (
            "site_a_checklist",
            JAN_2,
        )

    @pytest.mark.parametrize("key", ["2024-01-02", "_2024-01-02", "form_notadate"])
    def test_invalid_key_raises(self, key: str) -> None:
        """Keys without a task id or ISO date are rejected."""
        with pytest.raises(ValueError):
            parse_instance_key(key)


# =============================================================================
# TEST: LEDGER
# =============================================================================


class TestInstanceLedger:
    """Completion bucketing by local calendar day."""

    def test_completion_on_local_day(self) -> None:
        """A submission late in the UTC day belongs to that UTC day."""
        ledger = make_ledger(completions=[(TASK_ID, utc_dt(2024, 1, 2, 23, 59))])
        assert ledger.has_completion(TASK_ID, JAN_2)
        assert not ledger.has_completion(TASK_ID, date(2024, 1, 3))

    def test_completion_uses_calendar_timezone(self) -> None:
        """02:00 UTC on Jan 3 is still Jan 2 in New York."""
        ledger = InstanceLedger(
            [CompletionEvent(task_id=TASK_ID, submitted_at=utc_dt(2024, 1, 3, 2))],
            tz=ZoneInfo("America/New_York"),
        )
        assert ledger.has_completion(TASK_ID, JAN_2)

    def test_completion_count_counts_distinct_days(self) -> None:
        """Several submissions on one day count once."""
        ledger = make_ledger(
            completions=[
                (TASK_ID, utc_dt(2024, 1, 2, 8)),
                (TASK_ID, utc_dt(2024, 1, 2, 10)),
                (TASK_ID, utc_dt(2024, 1, 5, 10)),
            ]
        )
        assert ledger.completion_count_between(TASK_ID, date(2024, 1, 1), JAN_4) == 1
        assert ledger.completion_count_between(TASK_ID, JAN_2, date(2024, 1, 5)) == 2

    def test_cleared_keys(self) -> None:
        """Cleared markers are indexed by instance key."""
        ledger = make_ledger(cleared=[(TASK_ID, JAN_2)])
        assert ledger.is_cleared(TASK_ID, JAN_2)
        assert ledger.cleared_keys == frozenset({f"{TASK_ID}_2024-01-02"})


# =============================================================================
# TEST: STATE RESOLUTION
# =============================================================================


class TestResolve:
    """Classification precedence for one instance."""

    NOW = utc_dt(2024, 1, 4, 10)

    def _resolve(
        self, task: ScheduledTask, day: date, ledger: InstanceLedger | None = None
    ) -> str:
        return InstanceStateResolver.resolve(task, day, ledger or make_ledger(), self.NOW)

    def test_unpublished_is_inactive(self) -> None:
        """Draft tasks have no active instances."""
        task = make_task(status=const.FORM_STATUS_DRAFT)
        assert self._resolve(task, JAN_2) == const.INSTANCE_STATE_INACTIVE

    def test_after_end_is_inactive(self) -> None:
        """Dates past the end date are inactive."""
        task = make_task(schedule_end_date="2024-01-01")
        assert self._resolve(task, JAN_2) == const.INSTANCE_STATE_INACTIVE

    def test_non_business_day_is_inactive(self) -> None:
        """Saturday is inactive with the business-day filter on."""
        task = make_task(business_days_only=True)
        assert self._resolve(task, date(2024, 1, 6)) == const.INSTANCE_STATE_INACTIVE

    def test_past_date_is_missed(self) -> None:
        """An uncompleted, uncleared past occurrence is missed."""
        assert self._resolve(make_task(), JAN_2) == const.INSTANCE_STATE_MISSED

    def test_today_after_due_time_is_overdue_today(self) -> None:
        """Today past 09:00 without a submission is overdue today."""
        assert self._resolve(make_task(), JAN_4) == const.INSTANCE_STATE_OVERDUE_TODAY

    def test_today_before_due_time_is_pending(self) -> None:
        """Today before 09:00 is pending."""
        state = InstanceStateResolver.resolve(
            make_task(), JAN_4, make_ledger(), utc_dt(2024, 1, 4, 8)
        )
        assert state == const.INSTANCE_STATE_PENDING

    def test_future_date_is_pending(self) -> None:
        """Future occurrences are pending."""
        assert self._resolve(make_task(), date(2024, 1, 9)) == const.INSTANCE_STATE_PENDING

    def test_cleared_beats_missed(self) -> None:
        """A cleared past instance is no longer missed."""
        ledger = make_ledger(cleared=[(TASK_ID, JAN_2)])
        assert self._resolve(make_task(), JAN_2, ledger) == const.INSTANCE_STATE_CLEARED

    def test_completion_beats_cleared(self) -> None:
        """Completion wins even when a cleared marker exists."""
        ledger = make_ledger(
            completions=[(TASK_ID, utc_dt(2024, 1, 2, 15))],
            cleared=[(TASK_ID, JAN_2)],
        )
        assert self._resolve(make_task(), JAN_2, ledger) == const.INSTANCE_STATE_COMPLETED

    def test_late_completion_on_same_day_counts(self) -> None:
        """A submission after the due time on the same day completes the instance."""
        ledger = make_ledger(completions=[(TASK_ID, utc_dt(2024, 1, 4, 9, 30))])
        assert self._resolve(make_task(), JAN_4, ledger) == const.INSTANCE_STATE_COMPLETED

    def test_completion_on_other_day_does_not_count(self) -> None:
        """A next-day submission leaves the earlier instance missed."""
        ledger = make_ledger(completions=[(TASK_ID, utc_dt(2024, 1, 3, 8))])
        assert self._resolve(make_task(), JAN_2, ledger) == const.INSTANCE_STATE_MISSED

    def test_is_active_state(self) -> None:
        """Only INACTIVE is excluded from the active states."""
        assert InstanceStateResolver.is_active_state(const.INSTANCE_STATE_MISSED)
        assert not InstanceStateResolver.is_active_state(const.INSTANCE_STATE_INACTIVE)

    @pytest.mark.parametrize("completed", [True, False])
    @pytest.mark.parametrize("cleared", [True, False])
    @pytest.mark.parametrize("day", [JAN_2, JAN_4, date(2024, 1, 9)])
    def test_active_date_has_exactly_one_state(
        self, completed: bool, cleared: bool, day: date
    ) -> None:
        """Every active date resolves to one non-inactive state."""
        ledger = make_ledger(
            completions=[(TASK_ID, utc_dt(day.year, day.month, day.day, 12))]
            if completed
            else [],
            cleared=[(TASK_ID, day)] if cleared else [],
        )
        state = self._resolve(make_task(), day, ledger)
        assert state in const.ACTIVE_INSTANCE_STATES
        if completed:
            assert state == const.INSTANCE_STATE_COMPLETED
