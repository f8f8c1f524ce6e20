"""Shared fixtures for form compliance tests."""

from __future__ import annotations

from collections.abc import Iterator
from zoneinfo import ZoneInfo

import pytest

from formcompliance.managers import OverdueManager, SubmissionManager
from formcompliance.settings import ComplianceSettings, build_settings
from formcompliance.store import MemoryComplianceStore
from formcompliance.utils.dt_utils import get_default_timezone, set_default_timezone
from tests.helpers import make_form_record


@pytest.fixture(autouse=True)
def reset_default_timezone() -> Iterator[None]:
    """Evaluate every test in UTC unless it installs another calendar."""
    previous = get_default_timezone()
    set_default_timezone(ZoneInfo("UTC"))
    yield
    set_default_timezone(previous)


@pytest.fixture
def settings() -> ComplianceSettings:
    """Default settings: 24h grace, UTC calendar."""
    return build_settings()


@pytest.fixture
def store() -> MemoryComplianceStore:
    """Store seeded with one published daily form starting 2024-01-01 09:00."""
    return MemoryComplianceStore(forms=[make_form_record()])


@pytest.fixture
def overdue_manager(
    store: MemoryComplianceStore, settings: ComplianceSettings
) -> OverdueManager:
    """Overdue manager bound to the seeded store."""
    return OverdueManager(store, settings)


@pytest.fixture
def submission_manager(
    store: MemoryComplianceStore, settings: ComplianceSettings
) -> SubmissionManager:
    """Submission manager bound to the seeded store."""
    return SubmissionManager(store, settings)
