"""Tests for OverdueManager - fresh-fetch passes and past-due clearing.

The seeded store holds one published daily form starting 2024-01-01 09:00 UTC.
At 2024-01-04 10:00 UTC, Jan 2 and Jan 3 are past due and Jan 4 is overdue.
"""

# pylint: disable=protected-access
# pylint: disable=redefined-outer-name

from __future__ import annotations

from datetime import date, datetime
import logging
from unittest.mock import AsyncMock, patch

from freezegun import freeze_time
import pytest

from formcompliance import const
from formcompliance.managers import OverdueManager
from formcompliance.settings import build_settings
from formcompliance.store import DataFetchError, MemoryComplianceStore
from tests.helpers import TASK_ID, USER_ID, make_form_record, make_response, utc_dt

NOW = utc_dt(2024, 1, 4, 10)


# =============================================================================
# TEST: CATEGORIZATION
# =============================================================================


class TestCategorize:
    """Passes always use freshly fetched data."""

    async def test_categorize_from_store(self, overdue_manager: OverdueManager) -> None:
        """The documented scenario: 1 overdue today, 2 past due, 1 task."""
        result = await overdue_manager.async_categorize(USER_ID, now=NOW)
        assert result.stats.overdue_today == 1
        assert result.stats.past_due == 2
        assert result.stats.total_overdue == 1

    async def test_new_submission_seen_next_pass(
        self, overdue_manager: OverdueManager, store: MemoryComplianceStore
    ) -> None:
        """Nothing is cached between passes."""
        await overdue_manager.async_categorize(USER_ID, now=NOW)
        store.add_response(make_response(utc_dt(2024, 1, 3, 12)))

        result = await overdue_manager.async_categorize(USER_ID, now=NOW)
        assert [e.instance_date for e in result.past_due] == [date(2024, 1, 2)]

    async def test_unpublished_forms_excluded(
        self, overdue_manager: OverdueManager, store: MemoryComplianceStore
    ) -> None:
        """Draft forms never reach the categorizer."""
        store.add_form(make_form_record(id="draft", status=const.FORM_STATUS_DRAFT))
        result = await overdue_manager.async_categorize(USER_ID, now=NOW)
        assert {e.task_id for e in result.past_due} == {TASK_ID}

    async def test_other_users_markers_ignored(self) -> None:
        """Cleared markers are per user."""
        store = MemoryComplianceStore(
            forms=[make_form_record()],
            cleared=[
                {
                    const.DATA_CLEARED_USER_ID: "someone-else",
                    const.DATA_CLEARED_FORM_ID: TASK_ID,
                    const.DATA_CLEARED_INSTANCE_DATE: "2024-01-02",
                    const.DATA_CLEARED_AT: "2024-01-03T00:00:00+00:00",
                }
            ],
        )
        result = await OverdueManager(store).async_categorize(USER_ID, now=NOW)
        assert result.stats.past_due == 2

    async def test_fetch_failure_propagates(
        self, overdue_manager: OverdueManager, store: MemoryComplianceStore
    ) -> None:
        """A failed fetch raises instead of returning partial data."""
        with (
            patch.object(
                store,
                "async_fetch_completions",
                AsyncMock(side_effect=DataFetchError("fetch_completions", "timeout")),
            ),
            pytest.raises(DataFetchError),
        ):
            await overdue_manager.async_categorize(USER_ID, now=NOW)

    @freeze_time("2024-01-04 10:00:00")
    async def test_now_defaults_to_wall_clock(
        self, overdue_manager: OverdueManager
    ) -> None:
        """Omitting now uses the current time."""
        result = await overdue_manager.async_categorize(USER_ID)
        assert result.stats.past_due == 2

    async def test_tasks_due_today(
        self, overdue_manager: OverdueManager, store: MemoryComplianceStore
    ) -> None:
        """The daily form is due today; a weekly Monday form is not."""
        store.add_form(
            make_form_record(id="weekly", schedule_type=const.SCHEDULE_TYPE_WEEKLY)
        )
        due = await overdue_manager.async_tasks_due_today(now=NOW)
        assert [task.id for task in due] == [TASK_ID]

    async def test_manager_calendar_without_setup(self) -> None:
        """The manager's timezone applies whether or not async_setup ran."""
        store = MemoryComplianceStore(
            forms=[
                make_form_record(
                    id="weekly",
                    schedule_type=const.SCHEDULE_TYPE_WEEKLY,
                    schedule_start_date="2024-01-01T00:00:00.000Z",
                )
            ]
        )
        manager = OverdueManager(
            store, build_settings({const.CONF_TIMEZONE: "America/New_York"})
        )
        # Monday Jan 8, 10:00 in New York
        now = utc_dt(2024, 1, 8, 15)

        before = await manager.async_categorize(USER_ID, now=now)
        await manager.async_setup()
        after = await manager.async_categorize(USER_ID, now=now)

        assert before.stats.overdue_today == after.stats.overdue_today == 1
        assert before.stats.total_overdue == after.stats.total_overdue == 1

    async def test_naive_now_is_manager_wall_time(self) -> None:
        """A naive now is read in the manager's calendar, not the process default."""
        manager = OverdueManager(
            MemoryComplianceStore(forms=[make_form_record()]),
            build_settings({const.CONF_TIMEZONE: "America/New_York"}),
        )
        result = await manager.async_categorize(USER_ID, now=datetime(2024, 1, 4, 10))
        assert result.stats.overdue_today == 1


# =============================================================================
# TEST: CLEARING
# =============================================================================


class TestClearPastDue:
    """Bulk and single-instance clearing."""

    async def test_clear_all(
        self, overdue_manager: OverdueManager, store: MemoryComplianceStore
    ) -> None:
        """Clearing writes one marker per past-due instance and empties the set."""
        cleared = await overdue_manager.async_clear_past_due(USER_ID, now=NOW)

        assert cleared == 2
        assert {
            r[const.DATA_CLEARED_INSTANCE_DATE] for r in store.cleared_records
        } == {"2024-01-02", "2024-01-03"}
        assert overdue_manager.cleared_keys(USER_ID) == frozenset(
            {f"{TASK_ID}_2024-01-02", f"{TASK_ID}_2024-01-03"}
        )

        result = await overdue_manager.async_categorize(USER_ID, now=NOW)
        assert result.stats.past_due == 0
        # Today's instance is not clearable
        assert result.stats.overdue_today == 1
        assert result.stats.total_overdue == 1

    async def test_clear_is_idempotent(
        self, overdue_manager: OverdueManager, store: MemoryComplianceStore
    ) -> None:
        """A second clear writes nothing and does not call the store."""
        await overdue_manager.async_clear_past_due(USER_ID, now=NOW)

        with patch.object(
            store, "async_upsert_cleared", AsyncMock()
        ) as mock_upsert:
            cleared = await overdue_manager.async_clear_past_due(USER_ID, now=NOW)

        assert cleared == 0
        mock_upsert.assert_not_called()
        assert len(store.cleared_records) == 2

    async def test_upsert_failure_leaves_memory_unchanged(
        self, overdue_manager: OverdueManager, store: MemoryComplianceStore
    ) -> None:
        """A failed persist raises and nothing is marked cleared."""
        with (
            patch.object(
                store,
                "async_upsert_cleared",
                AsyncMock(side_effect=DataFetchError("upsert_cleared")),
            ),
            pytest.raises(DataFetchError),
        ):
            await overdue_manager.async_clear_past_due(USER_ID, now=NOW)

        assert overdue_manager.cleared_keys(USER_ID) == frozenset()
        assert store.cleared_records == []

        # Retrying succeeds
        assert await overdue_manager.async_clear_past_due(USER_ID, now=NOW) == 2

    async def test_keeps_first_cleared_at(
        self, overdue_manager: OverdueManager, store: MemoryComplianceStore
    ) -> None:
        """Re-upserting an existing marker keeps its original timestamp."""
        await overdue_manager.async_clear_past_due(USER_ID, now=NOW)
        first = {
            r[const.DATA_CLEARED_INSTANCE_DATE]: r[const.DATA_CLEARED_AT]
            for r in store.cleared_records
        }
        await store.async_upsert_cleared(store.cleared_records)
        assert {
            r[const.DATA_CLEARED_INSTANCE_DATE]: r[const.DATA_CLEARED_AT]
            for r in store.cleared_records
        } == first

    async def test_clear_single_instance(
        self,
        overdue_manager: OverdueManager,
        store: MemoryComplianceStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Clearing Jan 2 leaves Jan 3 past due."""
        with caplog.at_level(logging.INFO):
            assert await overdue_manager.async_clear_instance(
                USER_ID, TASK_ID, date(2024, 1, 2), now=NOW
            )
        assert f"Cleared past-due instance {TASK_ID}_2024-01-02" in caplog.text

        result = await overdue_manager.async_categorize(USER_ID, now=NOW)
        assert [e.instance_date for e in result.past_due] == [date(2024, 1, 3)]
        assert result.stats.total_overdue == 1

    @pytest.mark.parametrize(
        "instance_date",
        [date(2024, 1, 4), date(2024, 1, 1), date(2024, 1, 9)],
    )
    async def test_clear_instance_not_past_due(
        self,
        overdue_manager: OverdueManager,
        store: MemoryComplianceStore,
        instance_date: date,
    ) -> None:
        """Today, the start date and future dates are not clearable."""
        assert not await overdue_manager.async_clear_instance(
            USER_ID, TASK_ID, instance_date, now=NOW
        )
        assert store.cleared_records == []

    async def test_clear_instance_twice(
        self, overdue_manager: OverdueManager
    ) -> None:
        """The second clear of the same instance is a no-op."""
        day = date(2024, 1, 2)
        assert await overdue_manager.async_clear_instance(USER_ID, TASK_ID, day, now=NOW)
        assert not await overdue_manager.async_clear_instance(
            USER_ID, TASK_ID, day, now=NOW
        )
