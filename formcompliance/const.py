# File: const.py
"""Constants for the form compliance engine.

This file centralizes record keys, defaults, schedule types, instance states
and display labels so engines, managers and tests share one vocabulary.
Record keys mirror the column names used by the persistence backend.
"""

import logging

# ------------------------------------------------------------------------------------------------
# General
# ------------------------------------------------------------------------------------------------
# Logger
LOGGER = logging.getLogger(__package__)

# ------------------------------------------------------------------------------------------------
# Form Status
# ------------------------------------------------------------------------------------------------
FORM_STATUS_DRAFT = "draft"
FORM_STATUS_PUBLISHED = "published"
FORM_STATUS_ARCHIVED = "archived"

# ------------------------------------------------------------------------------------------------
# Schedule Types
# ------------------------------------------------------------------------------------------------
SCHEDULE_TYPE_ONE_TIME = "one_time"
SCHEDULE_TYPE_DAILY = "daily"
SCHEDULE_TYPE_WEEKLY = "weekly"
SCHEDULE_TYPE_MONTHLY = "monthly"
SCHEDULE_TYPE_CUSTOM = "custom"

SCHEDULE_TYPES = [
    SCHEDULE_TYPE_ONE_TIME,
    SCHEDULE_TYPE_DAILY,
    SCHEDULE_TYPE_WEEKLY,
    SCHEDULE_TYPE_MONTHLY,
    SCHEDULE_TYPE_CUSTOM,
]

# Schedules reported once when their end date has passed with no completions
ENDED_SCHEDULE_TYPES = frozenset({SCHEDULE_TYPE_WEEKLY, SCHEDULE_TYPE_MONTHLY})

# ------------------------------------------------------------------------------------------------
# Instance States
# ------------------------------------------------------------------------------------------------
INSTANCE_STATE_COMPLETED = "completed"
INSTANCE_STATE_CLEARED = "cleared"
INSTANCE_STATE_PENDING = "pending"
INSTANCE_STATE_OVERDUE_TODAY = "overdue_today"
INSTANCE_STATE_MISSED = "missed"
INSTANCE_STATE_INACTIVE = "inactive"

# States an active instance can be in (exactly one holds at a time)
ACTIVE_INSTANCE_STATES = frozenset(
    {
        INSTANCE_STATE_COMPLETED,
        INSTANCE_STATE_CLEARED,
        INSTANCE_STATE_PENDING,
        INSTANCE_STATE_OVERDUE_TODAY,
        INSTANCE_STATE_MISSED,
    }
)

# Separator between task id and ISO date in an instance key
INSTANCE_KEY_SEPARATOR = "_"

# ------------------------------------------------------------------------------------------------
# Overdue Categories
# ------------------------------------------------------------------------------------------------
OVERDUE_CATEGORY_TODAY = "today"
OVERDUE_CATEGORY_PAST = "past"

# ------------------------------------------------------------------------------------------------
# Weekdays (0=Sunday ... 6=Saturday)
# ------------------------------------------------------------------------------------------------
WEEKDAY_SUNDAY = 0
WEEKDAY_MONDAY = 1
WEEKDAY_TUESDAY = 2
WEEKDAY_WEDNESDAY = 3
WEEKDAY_THURSDAY = 4
WEEKDAY_FRIDAY = 5
WEEKDAY_SATURDAY = 6

WEEKDAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]

# ------------------------------------------------------------------------------------------------
# Form Record Keys
# ------------------------------------------------------------------------------------------------
DATA_FORM_ID = "id"
DATA_FORM_TITLE = "title"
DATA_FORM_STATUS = "status"
DATA_FORM_SCHEDULE_TYPE = "schedule_type"
DATA_FORM_SCHEDULE_START_DATE = "schedule_start_date"
DATA_FORM_SCHEDULE_END_DATE = "schedule_end_date"
DATA_FORM_SCHEDULE_TIME = "schedule_time"
DATA_FORM_SCHEDULE_TIMEZONE = "schedule_timezone"
DATA_FORM_SCHEDULE_FREQUENCY = "schedule_frequency"
DATA_FORM_BUSINESS_DAYS_ONLY = "business_days_only"
DATA_FORM_BUSINESS_DAYS = "business_days"
DATA_FORM_EXCLUDE_HOLIDAYS = "exclude_holidays"
DATA_FORM_HOLIDAY_CALENDAR = "holiday_calendar"

# ------------------------------------------------------------------------------------------------
# Response Record Keys
# ------------------------------------------------------------------------------------------------
DATA_RESPONSE_ID = "id"
DATA_RESPONSE_FORM_ID = "form_id"
DATA_RESPONSE_SUBMITTED_AT = "submitted_at"
DATA_RESPONSE_INTENDED_SUBMISSION_DATE = "intended_submission_date"
DATA_RESPONSE_IS_LATE_SUBMISSION = "is_late_submission"
DATA_RESPONSE_COMPLIANCE_NOTES = "compliance_notes"

# ------------------------------------------------------------------------------------------------
# Cleared Instance Record Keys
# ------------------------------------------------------------------------------------------------
DATA_CLEARED_USER_ID = "user_id"
DATA_CLEARED_FORM_ID = "form_id"
DATA_CLEARED_INSTANCE_DATE = "instance_date"
DATA_CLEARED_AT = "cleared_at"

# ------------------------------------------------------------------------------------------------
# Settings Keys
# ------------------------------------------------------------------------------------------------
CONF_GRACE_PERIOD = "grace_period"
CONF_TIMEZONE = "timezone"
CONF_DEFAULT_TIME_OF_DAY = "default_time_of_day"
CONF_MAX_WALK_DAYS = "max_walk_days"

# ------------------------------------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------------------------------------
DEFAULT_FORM_STATUS = FORM_STATUS_DRAFT
DEFAULT_SCHEDULE_TYPE = SCHEDULE_TYPE_ONE_TIME
DEFAULT_SCHEDULE_TIME = "09:00:00"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_BUSINESS_DAYS = [
    WEEKDAY_MONDAY,
    WEEKDAY_TUESDAY,
    WEEKDAY_WEDNESDAY,
    WEEKDAY_THURSDAY,
    WEEKDAY_FRIDAY,
]
DEFAULT_GRACE_PERIOD_HOURS = 24
DEFAULT_MAX_WALK_DAYS = 3660

# Safety limit when stepping to the next/previous business day
MAX_BUSINESS_DAY_ATTEMPTS = 14

# Float precision for rates
DATA_FLOAT_PRECISION = 2

# Compliance rate reported when there are no responses at all
DEFAULT_COMPLIANCE_RATE = 100.0

# ------------------------------------------------------------------------------------------------
# Display
# ------------------------------------------------------------------------------------------------
DISPLAY_ALL_DAYS = "All days"
DISPLAY_BUSINESS_DAYS_PREFIX = "Business days"
DISPLAY_DATE_FORMAT = "%b %d, %Y"
DISPLAY_TIME_FORMAT = "%H:%M"

# Overdue reason templates
REASON_TODAY_DAILY = "Due at {time} - No response today"
REASON_TODAY_ONE_TIME = "Scheduled for {time} - Not completed"
REASON_TODAY_DEFAULT = "Due today at {time} - Not completed"
REASON_PAST_DAILY = "Missed response for {date}"
REASON_PAST_ONE_TIME = "Was due {date}"
REASON_PAST_ENDED = "Ended {date}"
REASON_PAST_DEFAULT = "Past due"
REASON_BUSINESS_DAYS_SUFFIX = " (business days only)"
