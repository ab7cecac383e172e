"""Tests for Settings configuration model."""

from pathlib import Path

import pytest

from chronotask.config import Settings


class TestDefaults:
    def test_default_snapshot_path(self):
        s = Settings()
        assert s.snapshot_path == Path("data/chronotask.db")

    def test_default_scheduler_timezone(self):
        s = Settings()
        assert s.scheduler_timezone == "UTC"

    def test_default_time_format(self):
        s = Settings()
        assert s.time_format == "%Y-%m-%d %H:%M:%S"

    def test_default_log_level(self):
        s = Settings()
        assert s.log_level == "INFO"


class TestOverrides:
    def test_snapshot_path_coerced_to_path(self):
        s = Settings(snapshot_path="/tmp/tasks.db")
        assert s.snapshot_path == Path("/tmp/tasks.db")

    def test_environment_ignored_under_pytest(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SCHEDULER_TIMEZONE", "Europe/Berlin")
        s = Settings()
        assert s.scheduler_timezone == "UTC"


class TestExtraForbidden:
    def test_unknown_env_var_raises(self):
        with pytest.raises(ValueError, match="extra_forbidden"):
            Settings(**{"nonexistent_field": "value"})
