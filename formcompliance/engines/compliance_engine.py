"""Compliance Engine - submit-time lateness classification and reporting.

Applied once per form submission, independently of overdue categorization:
1. intended instant: the start date at the task's time of day; for daily
   schedules that have started, today's date at that time instead
2. late threshold: intended instant + grace period
3. late: submission time strictly after the threshold

Late submissions are accepted and flagged, never rejected. The intended
instant is what compliance reports group by, whatever the actual submission
time was.

ARCHITECTURE: Pure logic, no I/O. The availability fallback for failures
(is_late=False) lives in managers/submission_manager.py.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..data_builders import ConfigurationError
from ..utils.dt_utils import (
    HELPER_RETURN_ISO_DATETIME,
    as_utc,
    dt_format,
    dt_local_date,
    dt_to_utc,
)
from ..utils.math_utils import calculate_percentage
from .schedule_engine import ScheduleEvaluator

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from ..data_builders import ScheduledTask
    from ..type_defs import ComplianceSummaryDict, ResponseRecord

DEFAULT_GRACE_PERIOD = timedelta(hours=const.DEFAULT_GRACE_PERIOD_HOURS)


@dataclass(frozen=True)
class ComplianceResult:
    """Classification of one submission.

    Attributes:
        intended_instant: Compliance-relevant due instant
        late_threshold: intended_instant + grace period
        submitted_at: The submission time that was classified
        is_late: submitted_at is strictly after late_threshold
    """

    intended_instant: datetime
    late_threshold: datetime
    submitted_at: datetime
    is_late: bool


@dataclass(frozen=True)
class ComplianceSummary:
    """Compliance report totals."""

    total_responses: int = 0
    on_time_responses: int = 0
    late_responses: int = 0
    compliance_rate: float = const.DEFAULT_COMPLIANCE_RATE

    def as_dict(self) -> ComplianceSummaryDict:
        """Serialize for report views and exports."""
        return {
            "total_responses": self.total_responses,
            "on_time_responses": self.on_time_responses,
            "late_responses": self.late_responses,
            "compliance_rate": self.compliance_rate,
        }


class ComplianceClassifier:
    """Pure logic engine for late-submission flags and compliance totals.

    All methods are static - no instance state.
    """

    @staticmethod
    def intended_instant(
        task: ScheduledTask, now: datetime, tz: ZoneInfo | None = None
    ) -> datetime:
        """Return the due instant a submission at `now` is measured against.

        Raises:
            ConfigurationError: The task has no start date.
        """
        start = task.start_date
        if start is None:
            raise ConfigurationError(const.DATA_FORM_SCHEDULE_START_DATE, task.id)

        today = dt_local_date(now, tz)
        if task.schedule_type == const.SCHEDULE_TYPE_DAILY and today >= start:
            return ScheduleEvaluator.scheduled_instant(task, today, tz)
        return ScheduleEvaluator.scheduled_instant(task, start, tz)

    @staticmethod
    def classify(
        task: ScheduledTask,
        now: datetime,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        tz: ZoneInfo | None = None,
    ) -> ComplianceResult:
        """Classify a submission made at `now`.

        Example:
            one_time task starting 2024-01-01 09:00, submitted 2024-01-03 12:00,
            24h grace -> threshold 2024-01-02 09:00, is_late=True

        Raises:
            ConfigurationError: The task is not published or has no start
                date.
        """
        if not task.is_published:
            raise ConfigurationError(const.DATA_FORM_STATUS, task.id)
        intended = ComplianceClassifier.intended_instant(task, now, tz)
        threshold = intended + grace_period
        return ComplianceResult(
            intended_instant=intended,
            late_threshold=threshold,
            submitted_at=now,
            is_late=as_utc(now, tz) > as_utc(threshold, tz),
        )

    @staticmethod
    def build_submission_record(
        response: Mapping[str, Any], result: ComplianceResult
    ) -> dict[str, Any]:
        """Return the response with its compliance fields filled in.

        The submission-handling collaborator persists these alongside the raw
        submission for later reporting and export.
        """
        record = dict(response)
        record[const.DATA_RESPONSE_INTENDED_SUBMISSION_DATE] = dt_format(
            result.intended_instant, HELPER_RETURN_ISO_DATETIME
        )
        record[const.DATA_RESPONSE_IS_LATE_SUBMISSION] = result.is_late
        return record

    @staticmethod
    def summarize(
        responses: Iterable[ResponseRecord | Mapping[str, Any]],
        on_date: date | None = None,
        tz: ZoneInfo | None = None,
    ) -> ComplianceSummary:
        """Total on-time and late responses.

        Args:
            responses: Response records, with or without compliance fields
            on_date: Only count responses whose intended date falls on this
                local calendar day
            tz: Evaluation calendar override

        Returns:
            ComplianceSummary; the rate is 100.0 when there are no responses.
            Records without an intended date fall back to submitted_at, and a
            missing late flag counts as on time.
        """
        total = 0
        late = 0
        for response in responses:
            if on_date is not None:
                intended = dt_to_utc(
                    response.get(const.DATA_RESPONSE_INTENDED_SUBMISSION_DATE)
                    or response.get(const.DATA_RESPONSE_SUBMITTED_AT),
                    tz,
                )
                if intended is None or dt_local_date(intended, tz) != on_date:
                    continue
            total += 1
            if response.get(const.DATA_RESPONSE_IS_LATE_SUBMISSION):
                late += 1

        on_time = total - late
        return ComplianceSummary(
            total_responses=total,
            on_time_responses=on_time,
            late_responses=late,
            compliance_rate=calculate_percentage(
                on_time, total, empty_value=const.DEFAULT_COMPLIANCE_RATE
            ),
        )
