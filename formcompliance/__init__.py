"""Recurring-schedule and compliance engine for hosted forms.

Decides, for every form with a due-date schedule, whether a calendar instance
is pending, due, overdue today, past due, cleared or completed, and whether a
submission is late.

Layers:
- engines/: pure logic (no I/O, "now" always injected)
- managers/: fetch from the storage collaborator, then call the engines
- store.py: storage collaborator contract
"""

from .data_builders import (
    BusinessDaysConfig,
    ClearedInstanceMarker,
    CompletionEvent,
    ConfigurationError,
    MalformedScheduleError,
    ScheduledTask,
    build_scheduled_task,
    build_scheduled_tasks,
)
from .engines import (
    BusinessDayCalendar,
    ComplianceClassifier,
    ComplianceResult,
    InstanceLedger,
    InstanceStateResolver,
    OverdueCategorizer,
    OverdueResult,
    ScheduleEvaluator,
)
from .managers import OverdueManager, SubmissionManager
from .settings import ComplianceSettings, apply_settings, build_settings
from .store import ComplianceStore, DataFetchError, MemoryComplianceStore

__version__ = "0.5.0"

__all__ = [
    "BusinessDayCalendar",
    "BusinessDaysConfig",
    "ClearedInstanceMarker",
    "ComplianceClassifier",
    "ComplianceResult",
    "ComplianceSettings",
    "ComplianceStore",
    "CompletionEvent",
    "ConfigurationError",
    "DataFetchError",
    "InstanceLedger",
    "InstanceStateResolver",
    "MalformedScheduleError",
    "MemoryComplianceStore",
    "OverdueCategorizer",
    "OverdueManager",
    "OverdueResult",
    "ScheduleEvaluator",
    "ScheduledTask",
    "SubmissionManager",
    "apply_settings",
    "build_scheduled_task",
    "build_scheduled_tasks",
    "build_settings",
]
