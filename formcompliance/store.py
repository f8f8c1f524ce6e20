# File: store.py
"""Storage collaborator contract for the form compliance engine.

Forms, responses and cleared-instance markers live in an external backend.
Managers only talk to it through ComplianceStore, so any backend (REST
client, database session, test double) can be plugged in.

MemoryComplianceStore is the in-process implementation: it keeps rows in an
in-memory cache keyed the same way the backend's unique constraints are.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
import copy
from typing import TYPE_CHECKING, Any

from . import const

if TYPE_CHECKING:
    from .type_defs import (
        ClearedInstanceRecord,
        FormRecord,
        ResponseRecord,
        TaskId,
        UserId,
    )


class DataFetchError(Exception):
    """A storage collaborator call failed.

    Never absorbed by the overdue path: presenting stale or partial data as
    authoritative would produce false compliance signals.

    Attributes:
        operation: Name of the store operation that failed
    """

    def __init__(self, operation: str, message: str | None = None) -> None:
        """Initialize DataFetchError.

        Args:
            operation: Name of the store operation that failed
            message: Optional backend error detail
        """
        self.operation = operation
        detail = f": {message}" if message else ""
        super().__init__(f"Storage operation '{operation}' failed{detail}")


class ComplianceStore(ABC):
    """Async storage collaborator used by the managers.

    Implementations raise DataFetchError for any backend failure.
    """

    @abstractmethod
    async def async_fetch_tasks(self) -> list[FormRecord]:
        """Return every form record visible to the caller."""

    @abstractmethod
    async def async_fetch_task(self, task_id: TaskId) -> FormRecord | None:
        """Return one form record, or None when it does not exist."""

    @abstractmethod
    async def async_fetch_completions(
        self, task_ids: Iterable[TaskId] | None = None
    ) -> list[ResponseRecord]:
        """Return responses for the given forms (all forms when None)."""

    @abstractmethod
    async def async_fetch_cleared(self, user_id: UserId) -> list[ClearedInstanceRecord]:
        """Return the user's cleared-instance markers."""

    @abstractmethod
    async def async_upsert_cleared(self, records: list[ClearedInstanceRecord]) -> None:
        """Persist markers as one batch, unique on (user_id, form_id, instance_date)."""


class MemoryComplianceStore(ComplianceStore):
    """In-memory ComplianceStore.

    Returned rows are deep copies so callers can never mutate the cache.
    """

    def __init__(
        self,
        forms: Iterable[FormRecord] = (),
        responses: Iterable[ResponseRecord] = (),
        cleared: Iterable[ClearedInstanceRecord] = (),
    ) -> None:
        """Initialize the store with optional seed rows."""
        self._forms: dict[str, FormRecord] = {
            str(form[const.DATA_FORM_ID]): form for form in forms  # type: ignore[literal-required]
        }
        self._responses: list[ResponseRecord] = list(responses)
        self._cleared: dict[tuple[str, str, str], ClearedInstanceRecord] = {}
        for record in cleared:
            self._cleared.setdefault(self._cleared_key(record), record)

    @staticmethod
    def _cleared_key(record: ClearedInstanceRecord | dict[str, Any]) -> tuple[str, str, str]:
        return (
            str(record[const.DATA_CLEARED_USER_ID]),  # type: ignore[literal-required]
            str(record[const.DATA_CLEARED_FORM_ID]),  # type: ignore[literal-required]
            str(record[const.DATA_CLEARED_INSTANCE_DATE]),  # type: ignore[literal-required]
        )

    # -------------------------------------------------------------------------------------
    # Seeding helpers (form authoring / submission collaborators write through these)
    # -------------------------------------------------------------------------------------

    def add_form(self, form: FormRecord) -> None:
        """Insert or replace a form record."""
        self._forms[str(form[const.DATA_FORM_ID])] = form  # type: ignore[literal-required]

    def add_response(self, response: ResponseRecord | dict[str, Any]) -> None:
        """Append a response record."""
        self._responses.append(response)  # type: ignore[arg-type]

    @property
    def cleared_records(self) -> list[ClearedInstanceRecord]:
        """Snapshot of every persisted cleared marker."""
        return copy.deepcopy(list(self._cleared.values()))

    # -------------------------------------------------------------------------------------
    # ComplianceStore API
    # -------------------------------------------------------------------------------------

    async def async_fetch_tasks(self) -> list[FormRecord]:
        return copy.deepcopy(list(self._forms.values()))

    async def async_fetch_task(self, task_id: TaskId) -> FormRecord | None:
        form = self._forms.get(task_id)
        return copy.deepcopy(form) if form is not None else None

    async def async_fetch_completions(
        self, task_ids: Iterable[TaskId] | None = None
    ) -> list[ResponseRecord]:
        if task_ids is None:
            return copy.deepcopy(self._responses)
        wanted = set(task_ids)
        return copy.deepcopy(
            [
                response
                for response in self._responses
                if response.get(const.DATA_RESPONSE_FORM_ID) in wanted
            ]
        )

    async def async_fetch_cleared(self, user_id: UserId) -> list[ClearedInstanceRecord]:
        return copy.deepcopy(
            [
                record
                for key, record in self._cleared.items()
                if key[0] == user_id
            ]
        )

    async def async_upsert_cleared(self, records: list[ClearedInstanceRecord]) -> None:
        inserted = 0
        for record in records:
            key = self._cleared_key(record)
            if key not in self._cleared:
                inserted += 1
            # Keep the first cleared_at; re-clearing is a no-op
            self._cleared.setdefault(key, copy.deepcopy(record))
        const.LOGGER.debug(
            "DEBUG: Upserted %s cleared markers (%s new)", len(records), inserted
        )
