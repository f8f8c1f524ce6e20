"""Submission Manager - submit-time compliance classification and reporting.

Submissions are never blocked by compliance logic. If the task cannot be
loaded or has no usable schedule, the submission is classified on time
(is_late=False, intended instant = submission time) and a warning is logged.
Compliance reports, on the other hand, propagate fetch failures so the view
can offer a retry instead of showing partial totals.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..data_builders import ConfigurationError, build_scheduled_task
from ..engines.compliance_engine import (
    ComplianceClassifier,
    ComplianceResult,
    ComplianceSummary,
)
from ..store import DataFetchError
from ..utils.dt_utils import dt_to_utc
from .base_manager import BaseManager

if TYPE_CHECKING:
    from ..type_defs import TaskId


class SubmissionManager(BaseManager):
    """Classifies submissions and aggregates compliance totals."""

    async def async_classify_submission(
        self, task_id: TaskId, submitted_at: datetime | None = None
    ) -> ComplianceResult:
        """Classify a submission for a form.

        Args:
            task_id: Form being submitted
            submitted_at: Submission time (wall clock when None)

        Returns:
            ComplianceResult. Falls back to an on-time result when the form
            cannot be loaded or has no start date.
        """
        now = self._resolve_now(submitted_at)
        try:
            record = await self._async_fetch(
                "fetch_task", self.store.async_fetch_task(task_id)
            )
            if record is None:
                raise ConfigurationError(const.DATA_FORM_ID, task_id)
            task = build_scheduled_task(record, self.settings.default_time_of_day)
            return ComplianceClassifier.classify(
                task, now, self.settings.grace_period, self.tz
            )
        except (ConfigurationError, DataFetchError) as err:
            const.LOGGER.warning(
                "WARNING: Compliance classification failed for form %s, "
                "accepting submission as on time: %s",
                task_id,
                err,
            )
            return ComplianceResult(
                intended_instant=now,
                late_threshold=now,
                submitted_at=now,
                is_late=False,
            )

    async def async_prepare_submission(
        self, response: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Return a response record with its compliance fields filled in.

        Uses the record's own submitted_at when present.
        """
        task_id = str(response.get(const.DATA_RESPONSE_FORM_ID, ""))
        submitted_at = dt_to_utc(
            response.get(const.DATA_RESPONSE_SUBMITTED_AT), self.tz
        )
        result = await self.async_classify_submission(task_id, submitted_at)
        return ComplianceClassifier.build_submission_record(response, result)

    async def async_compliance_summary(
        self,
        task_id: TaskId | None = None,
        on_date: date | None = None,
    ) -> ComplianceSummary:
        """Compliance totals across one form (or all forms).

        Raises:
            DataFetchError: The response fetch failed.
        """
        responses = await self._async_fetch(
            "fetch_completions",
            self.store.async_fetch_completions([task_id] if task_id else None),
        )
        return ComplianceClassifier.summarize(responses, on_date=on_date, tz=self.tz)
