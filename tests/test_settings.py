"""Tests for settings validation (voluptuous schema)."""

from __future__ import annotations

from datetime import time, timedelta
from zoneinfo import ZoneInfo

import pytest
import voluptuous as vol

from formcompliance import const
from formcompliance.settings import apply_settings, build_settings
from formcompliance.utils.dt_utils import get_default_timezone


class TestBuildSettings:
    """Defaults and coercion."""

    def test_defaults(self) -> None:
        """An empty mapping gives 24h grace, UTC and 09:00."""
        settings = build_settings()
        assert settings.grace_period == timedelta(hours=24)
        assert settings.timezone == ZoneInfo("UTC")
        assert settings.default_time_of_day == time(9, 0)
        assert settings.max_walk_days == const.DEFAULT_MAX_WALK_DAYS

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (12, timedelta(hours=12)),
            (1.5, timedelta(hours=1, minutes=30)),
            ("48", timedelta(hours=48)),
            ("1d 6h", timedelta(days=1, hours=6)),
            (timedelta(minutes=30), timedelta(minutes=30)),
        ],
    )
    def test_grace_period_forms(self, raw: object, expected: timedelta) -> None:
        """Grace periods accept hours, duration strings and timedeltas."""
        assert build_settings({const.CONF_GRACE_PERIOD: raw}).grace_period == expected

    @pytest.mark.parametrize("raw", [0, -1, "0", True, [24]])
    def test_invalid_grace_period(self, raw: object) -> None:
        """Zero, negative and non-duration values are rejected."""
        with pytest.raises(vol.Invalid):
            build_settings({const.CONF_GRACE_PERIOD: raw})

    def test_timezone_and_time(self) -> None:
        """Timezone labels and wall-clock strings are resolved."""
        settings = build_settings(
            {
                const.CONF_TIMEZONE: "Europe/Berlin",
                const.CONF_DEFAULT_TIME_OF_DAY: "17:30",
            }
        )
        assert settings.timezone == ZoneInfo("Europe/Berlin")
        assert settings.default_time_of_day == time(17, 30)

    @pytest.mark.parametrize(
        "raw",
        [
            {const.CONF_TIMEZONE: "Mars/Olympus_Mons"},
            {const.CONF_DEFAULT_TIME_OF_DAY: "late"},
            {const.CONF_MAX_WALK_DAYS: 0},
            {"unknown_option": 1},
        ],
    )
    def test_rejected_values(self, raw: dict) -> None:
        """Unknown zones, bad times, a zero walk bound and unknown keys fail."""
        with pytest.raises(vol.Invalid):
            build_settings(raw)

    def test_apply_installs_timezone(self) -> None:
        """apply_settings sets the evaluation calendar."""
        apply_settings(build_settings({const.CONF_TIMEZONE: "America/Chicago"}))
        assert get_default_timezone() == ZoneInfo("America/Chicago")
