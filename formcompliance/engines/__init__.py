"""Engine modules for the form compliance engine.

Contains pure computation engines (no I/O):
- business_day_engine: Business-day predicates and distances
- schedule_engine: Recurrence matching, due instants, occurrence generation
- instance_engine: Instance identity, completion ledger, state resolution
- overdue_engine: Overdue-Today / Past-Due categorization and counts
- compliance_engine: Submit-time lateness and compliance totals
"""

# Use relative imports within package to avoid mypy module resolution issues
from .business_day_engine import BusinessDayCalendar, HolidayLookup, weekday_index
from .compliance_engine import (
    ComplianceClassifier,
    ComplianceResult,
    ComplianceSummary,
)
from .instance_engine import (
    InstanceLedger,
    InstanceStateResolver,
    instance_key,
    parse_instance_key,
)
from .overdue_engine import (
    OverdueCategorizer,
    OverdueEntry,
    OverdueResult,
    OverdueStats,
)
from .schedule_engine import ScheduleEvaluator

__all__ = [
    "BusinessDayCalendar",
    "ComplianceClassifier",
    "ComplianceResult",
    "ComplianceSummary",
    "HolidayLookup",
    "InstanceLedger",
    "InstanceStateResolver",
    "OverdueCategorizer",
    "OverdueEntry",
    "OverdueResult",
    "OverdueStats",
    "ScheduleEvaluator",
    "instance_key",
    "parse_instance_key",
    "weekday_index",
]
