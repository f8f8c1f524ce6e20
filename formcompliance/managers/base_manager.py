"""Base manager class for form compliance managers."""

from __future__ import annotations

from abc import ABC
from typing import TYPE_CHECKING, TypeVar

from .. import const
from ..settings import ComplianceSettings, apply_settings, build_settings
from ..store import DataFetchError
from ..utils.dt_utils import as_utc, dt_now_utc

if TYPE_CHECKING:
    from collections.abc import Awaitable
    from datetime import datetime
    from zoneinfo import ZoneInfo

    from ..engines.business_day_engine import HolidayLookup
    from ..store import ComplianceStore

_T = TypeVar("_T")


class BaseManager(ABC):
    """Base class for managers that pair a storage collaborator with the engines.

    Provides:
    - Shared settings, timezone and holiday lookup
    - Injectable "now" (defaults to the wall clock only at this layer)
    - Fetch wrapper that logs and re-raises DataFetchError

    Engines stay pure; every I/O call goes through a manager.
    """

    def __init__(
        self,
        store: ComplianceStore,
        settings: ComplianceSettings | None = None,
        holiday_lookup: HolidayLookup | None = None,
    ) -> None:
        """Initialize manager.

        Args:
            store: Storage collaborator for forms, responses and cleared markers
            settings: Validated settings (defaults from build_settings())
            holiday_lookup: Optional holiday-calendar collaborator
        """
        self.store = store
        self.settings = settings or build_settings()
        self.holiday_lookup = holiday_lookup

    @property
    def tz(self) -> ZoneInfo:
        """Evaluation calendar of this manager."""
        return self.settings.timezone

    async def async_setup(self) -> None:
        """Set up the manager (install the evaluation calendar).

        Called once before the first evaluation pass.
        """
        apply_settings(self.settings)
        const.LOGGER.debug("Manager %s set up", self.__class__.__name__)

    def _resolve_now(self, now: datetime | None) -> datetime:
        """Return the injected time in UTC, or the wall clock when omitted.

        A naive `now` is wall time in this manager's calendar.
        """
        return as_utc(now, self.tz) if now is not None else dt_now_utc()

    async def _async_fetch(self, operation: str, call: Awaitable[_T]) -> _T:
        """Await a store call, logging a DataFetchError before re-raising it."""
        try:
            return await call
        except DataFetchError:
            const.LOGGER.error(
                "ERROR: %s: store operation '%s' failed, aborting",
                self.__class__.__name__,
                operation,
            )
            raise
