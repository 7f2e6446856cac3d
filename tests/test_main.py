"""
Tests for main.py - Command-line entry point
"""

from datetime import date

import pytest
import yaml

from main import format_month, main
from schedule_validator import CATEGORY_VARIANCE, Finding
from scheduler_service import SchedulerService
from scheduling_engine import ScheduleResult


class TestMain:
    """Tests for the CLI."""

    def test_generates_and_prints_grid(self, nonexistent_config, capsys):
        code = main(["--config", nonexistent_config, "--month", "2026-06",
                     "--strength", "weak", "--seed", "1"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Sato" in out
        assert "total" in out
        assert "attempt(s)" in out

    def test_save_writes_config(self, nonexistent_config):
        code = main(["--config", nonexistent_config, "--month", "2026-06",
                     "--strength", "weak", "--seed", "1", "--save"])
        assert code == 0
        with open(nonexistent_config, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        assert data["schedule"]["shifts"]
        assert "2026-07" in data["last_holidays"]

    def test_bad_month_is_usage_error(self, nonexistent_config):
        with pytest.raises(SystemExit) as exc:
            main(["--config", nonexistent_config, "--month", "June"])
        assert exc.value.code == 2

    def test_unknown_strength_rejected(self, nonexistent_config):
        with pytest.raises(SystemExit):
            main(["--config", nonexistent_config, "--strength", "turbo"])

    def test_unmet_target_prints_schedule_check(self, nonexistent_config, capsys):
        """At the default base_off every weekday is fully staffed, so a target of 2 is missed."""
        svc = SchedulerService(config_path=nonexistent_config)
        svc.year_month = "2026-06"
        svc.set_daily_target(date(2026, 6, 10), 2)
        assert svc.save_config()

        code = main(["--config", nonexistent_config, "--strength", "weak", "--seed", "1"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Generated with issues" in out
        assert "SCHEDULE CHECK" in out
        assert "[target]" in out
        assert "2026-06-10: target 2" in out

    def test_lock_impact_printed(self, nonexistent_config, capsys, monkeypatch):
        finding = Finding(
            CATEGORY_VARIANCE, "Headcount spread 3 exceeds 1",
            {"locked_on_site": {"2026-06-01": ["Sato", "Suzuki"]}, "locked_off": {"2026-06-02": ["Tanaka"]}},
        )
        monkeypatch.setattr(
            SchedulerService, "generate",
            lambda self, progress=None, cancel_token=None: ScheduleResult(
                success=True, warnings=[finding.message], findings=[finding], attempts=5,
            ),
        )
        code = main(["--config", nonexistent_config, "--month", "2026-06"])
        out = capsys.readouterr().out
        assert code == 0
        assert "after 5 attempt(s)" in out
        assert "2026-06-01: 2 locked on site -> Sato, Suzuki" in out
        assert "2026-06-02: 1 locked off -> Tanaka" in out


class TestFormatMonth:
    def test_locked_cells_marked(self, nonexistent_config):
        svc = SchedulerService(config_path=nonexistent_config)
        svc.year_month = "2026-06"
        svc.set_lock(date(2026, 6, 1), "m1", "TRIP")
        text = format_month(svc, {})
        assert "T*" in text
        assert text.splitlines()[0].strip().startswith("1")
