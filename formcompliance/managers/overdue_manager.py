"""Overdue Manager - fetch-then-categorize passes and past-due clearing.

Every pass fetches fresh completions and cleared markers; instance state is
never cached across calls, so overdue counts cannot go stale.

Clearing sequence (async_clear_past_due):
1. Categorize with fresh data to get the currently-missed instance keys
2. Drop keys the user already cleared
3. Persist the rest as one idempotent batch upsert
4. Only then update the in-memory cleared set

A failed fetch or upsert raises DataFetchError and leaves in-memory state
untouched; retrying is safe because the upsert is keyed on
(user_id, form_id, instance_date).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING

from .. import const
from ..data_builders import (
    ClearedInstanceMarker,
    ScheduledTask,
    build_cleared_markers,
    build_cleared_record,
    build_completion_events,
    build_scheduled_tasks,
)
from ..engines.instance_engine import InstanceLedger, instance_key, parse_instance_key
from ..engines.overdue_engine import OverdueCategorizer, OverdueResult
from .base_manager import BaseManager

if TYPE_CHECKING:
    from ..engines.business_day_engine import HolidayLookup
    from ..settings import ComplianceSettings
    from ..store import ComplianceStore
    from ..type_defs import InstanceKey, TaskId, UserId


class OverdueManager(BaseManager):
    """Runs overdue categorization against the storage collaborator."""

    def __init__(
        self,
        store: ComplianceStore,
        settings: ComplianceSettings | None = None,
        holiday_lookup: HolidayLookup | None = None,
    ) -> None:
        """Initialize manager; see BaseManager for arguments."""
        super().__init__(store, settings, holiday_lookup)
        self._cleared_keys: dict[UserId, set[InstanceKey]] = {}

    # =========================================================================
    # Queries
    # =========================================================================

    def cleared_keys(self, user_id: UserId) -> frozenset[InstanceKey]:
        """In-memory cleared set for a user, as of the last pass or clear."""
        return frozenset(self._cleared_keys.get(user_id, ()))

    async def async_categorize(
        self,
        user_id: UserId,
        tasks: Iterable[ScheduledTask] | None = None,
        now: datetime | None = None,
    ) -> OverdueResult:
        """Categorize overdue and past-due instances for a user.

        Args:
            user_id: User whose cleared markers apply
            tasks: Current task list (fetched from the store when None)
            now: Injected current time (wall clock when None)

        Returns:
            OverdueResult for views.

        Raises:
            DataFetchError: Any fetch failed; no result is produced.
        """
        resolved_now = self._resolve_now(now)
        task_list, ledger = await self._async_load(user_id, tasks)
        return OverdueCategorizer.categorize(
            task_list,
            ledger,
            resolved_now,
            holiday_lookup=self.holiday_lookup,
            tz=self.tz,
            max_walk_days=self.settings.max_walk_days,
        )

    async def async_tasks_due_today(
        self,
        tasks: Iterable[ScheduledTask] | None = None,
        now: datetime | None = None,
    ) -> list[ScheduledTask]:
        """Return published tasks with an instance today (any state).

        Raises:
            DataFetchError: Any fetch failed.
        """
        resolved_now = self._resolve_now(now)
        task_list = await self._async_load_tasks(tasks)
        completions = await self._async_fetch(
            "fetch_completions",
            self.store.async_fetch_completions([task.id for task in task_list]),
        )
        events = build_completion_events(completions, self.tz)
        ledger = InstanceLedger(events, tz=self.tz)
        return OverdueCategorizer.tasks_due_today(
            task_list, ledger, resolved_now, self.holiday_lookup, self.tz
        )

    # =========================================================================
    # Clearing
    # =========================================================================

    async def async_clear_past_due(
        self,
        user_id: UserId,
        tasks: Iterable[ScheduledTask] | None = None,
        now: datetime | None = None,
    ) -> int:
        """Clear every currently past-due instance for a user.

        Returns:
            Number of newly cleared instances (0 when nothing is outstanding).

        Raises:
            DataFetchError: A fetch or the upsert failed; nothing is marked
                cleared in memory.
        """
        resolved_now = self._resolve_now(now)
        task_list, ledger = await self._async_load(user_id, tasks)
        result = OverdueCategorizer.categorize(
            task_list,
            ledger,
            resolved_now,
            holiday_lookup=self.holiday_lookup,
            tz=self.tz,
            max_walk_days=self.settings.max_walk_days,
        )

        pending_keys = sorted(result.past_due_keys - ledger.cleared_keys)
        if not pending_keys:
            const.LOGGER.debug("No past-due instances to clear for user %s", user_id)
            return 0

        await self._async_persist_cleared(user_id, pending_keys, resolved_now)
        const.LOGGER.info(
            "Cleared %s past-due instances for user %s", len(pending_keys), user_id
        )
        return len(pending_keys)

    async def async_clear_instance(
        self,
        user_id: UserId,
        task_id: TaskId,
        instance_date: date,
        tasks: Iterable[ScheduledTask] | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Clear a single past-due instance.

        Returns:
            True when a marker was written; False when the instance is not
            currently past due (already cleared, completed, or never missed).

        Raises:
            DataFetchError: A fetch or the upsert failed.
        """
        resolved_now = self._resolve_now(now)
        task_list, ledger = await self._async_load(user_id, tasks)
        result = OverdueCategorizer.categorize(
            [task for task in task_list if task.id == task_id],
            ledger,
            resolved_now,
            holiday_lookup=self.holiday_lookup,
            tz=self.tz,
            max_walk_days=self.settings.max_walk_days,
        )

        key = instance_key(task_id, instance_date)
        if key not in result.past_due_keys or key in ledger.cleared_keys:
            return False

        await self._async_persist_cleared(user_id, [key], resolved_now)
        const.LOGGER.info(
            "Cleared past-due instance %s for user %s", key, user_id
        )
        return True

    # =========================================================================
    # Private: loading and persistence
    # =========================================================================

    async def _async_load_tasks(
        self, tasks: Iterable[ScheduledTask] | None
    ) -> list[ScheduledTask]:
        if tasks is not None:
            return list(tasks)
        records = await self._async_fetch("fetch_tasks", self.store.async_fetch_tasks())
        return build_scheduled_tasks(records, self.settings.default_time_of_day)

    async def _async_load(
        self, user_id: UserId, tasks: Iterable[ScheduledTask] | None
    ) -> tuple[list[ScheduledTask], InstanceLedger]:
        """Fetch tasks, completions and cleared markers for one pass."""
        task_list = await self._async_load_tasks(tasks)
        published_ids = [task.id for task in task_list if task.is_published]

        completions = await self._async_fetch(
            "fetch_completions", self.store.async_fetch_completions(published_ids)
        )
        cleared = await self._async_fetch(
            "fetch_cleared", self.store.async_fetch_cleared(user_id)
        )
        markers = build_cleared_markers(cleared)

        events = build_completion_events(completions, self.tz)
        ledger = InstanceLedger(events, markers, tz=self.tz)
        self._cleared_keys[user_id] = set(ledger.cleared_keys)
        return task_list, ledger

    async def _async_persist_cleared(
        self, user_id: UserId, keys: list[InstanceKey], cleared_at: datetime
    ) -> None:
        """Upsert markers for `keys`, then record them in memory."""
        records = []
        for key in keys:
            task_id, day = parse_instance_key(key)
            records.append(
                build_cleared_record(
                    ClearedInstanceMarker(user_id=user_id, task_id=task_id, instance_date=day),
                    cleared_at,
                )
            )

        await self._async_fetch("upsert_cleared", self.store.async_upsert_cleared(records))
        self._cleared_keys.setdefault(user_id, set()).update(keys)
