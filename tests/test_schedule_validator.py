"""
Tests for schedule_validator.py - Post-generation findings
"""

from datetime import date

from schedule_builders import Member
from schedule_validator import (
    CATEGORY_CONSECUTIVE,
    CATEGORY_TARGET,
    CATEGORY_VARIANCE,
    Finding,
    ValidationReport,
    daily_headcounts,
    longest_streak,
    validate_schedule,
)
from shift_ledger import ShiftLedger


def _flat_month(ctx, helpers):
    """Two people per working day, alternating so nobody passes the streak limit."""
    helpers.fill(ctx.ledger, ctx.dates, ctx.member_ids, "OFF")
    for i, day in enumerate(ctx.work_dates):
        pair = ["m1", "m3"] if i % 2 == 0 else ["m2", "m4"]
        helpers.fill(ctx.ledger, [day], pair, "ON_SITE")


class TestReport:
    """Tests for ValidationReport helpers."""

    def test_empty_report_is_clean(self):
        report = ValidationReport()
        assert report.is_clean
        assert not report.has_variance_issue
        assert "No problems found" in report.format_report()

    def test_by_category(self):
        report = ValidationReport()
        report.add(Finding(CATEGORY_TARGET, "a"))
        report.add(Finding(CATEGORY_VARIANCE, "b"))
        assert [f.message for f in report.by_category(CATEGORY_VARIANCE)] == ["b"]
        assert report.has_variance_issue
        assert report.messages() == ["a", "b"]

    def test_format_lists_lock_impact(self):
        report = ValidationReport()
        report.add(Finding(
            CATEGORY_VARIANCE, "spread",
            {"locked_on_site": {"2026-06-01": ["Sato"]}, "locked_off": {}},
        ))
        text = report.format_report()
        assert "1 problem(s) found" in text
        assert "2026-06-01: 1 locked on site -> Sato" in text


class TestHeadcounts:
    def test_daily_headcounts(self, helpers):
        ledger = ShiftLedger()
        ledger.set(helpers.d(1), "m1", "ON_SITE")
        ledger.set(helpers.d(1), "m2", "HALF_AM")
        counts = daily_headcounts(ledger, ["m1", "m2"], [helpers.d(1), helpers.d(2)])
        assert counts == {helpers.d(1): 1.5, helpers.d(2): 0}


class TestValidateSchedule:
    """Tests for validate_schedule."""

    def test_clean_month(self, make_ctx, helpers):
        ctx = make_ctx()
        _flat_month(ctx, helpers)
        assert validate_schedule(ctx).is_clean

    def test_missed_target(self, make_ctx, helpers):
        day = date(2026, 6, 10)
        ctx = make_ctx(daily_targets={day: 3})
        _flat_month(ctx, helpers)
        report = validate_schedule(ctx)
        findings = report.by_category(CATEGORY_TARGET)
        assert len(findings) == 1
        assert findings[0].message == "📅 2026-06-10: target 3 → actual 2"
        assert findings[0].details["actual"] == 2

    def test_variance_finding_with_lock_impact(self, make_ctx, helpers):
        ledger = ShiftLedger()
        ledger.lock(helpers.d(1), "m2", "ON_SITE")
        ledger.lock(helpers.d(1), "m4", "ON_SITE")
        ledger.lock(helpers.d(2), "m1", "OFF")
        ctx = make_ctx(ledger=ledger)
        _flat_month(ctx, helpers)
        report = validate_schedule(ctx)
        findings = report.by_category(CATEGORY_VARIANCE)
        assert len(findings) == 1
        details = findings[0].details
        # June 1: m1, m3 plus locked m2, m4
        assert details["max"] == 4
        assert details["min"] == 2
        assert details["max_dates"] == ["2026-06-01"]
        assert "2026-06-02" in details["min_dates"]
        assert details["locked_on_site"] == {"2026-06-01": ["Suzuki", "Tanaka"]}
        assert details["locked_off"] == {"2026-06-02": ["Sato"]}
        assert "min: 2, max: 4" in findings[0].message

    def test_spread_of_one_not_reported(self, make_ctx, helpers):
        ctx = make_ctx()
        _flat_month(ctx, helpers)
        ctx.ledger.set(helpers.d(1), "m2", "ON_SITE")
        assert not validate_schedule(ctx).has_variance_issue

    def test_consecutive_over_limit(self, make_ctx, helpers):
        ctx = make_ctx(members=[Member(id="m1", name="Sato", team_id="t1")])
        helpers.fill(ctx.ledger, ctx.dates, ["m1"], "OFF")
        helpers.fill(ctx.ledger, [helpers.d(n) for n in range(1, 8)], ["m1"], "ON_SITE")
        report = validate_schedule(ctx)
        findings = report.by_category(CATEGORY_CONSECUTIVE)
        assert len(findings) == 1
        assert findings[0].message == "👤 Sato: 7 consecutive work days (limit: 5)"
        assert findings[0].details["dates"] == ["2026-06-06", "2026-06-07"]

    def test_carried_streak_counts(self, make_ctx, helpers):
        """Four days carried from May plus June 1-2 passes a limit of 5."""
        ctx = make_ctx(
            members=[Member(id="m1", name="Sato", team_id="t1")],
            streak_seeds={"m1": 4},
        )
        helpers.fill(ctx.ledger, ctx.dates, ["m1"], "OFF")
        helpers.fill(ctx.ledger, [helpers.d(1), helpers.d(2)], ["m1"], "ON_SITE")
        longest, over = longest_streak(ctx, "m1")
        assert longest == 6
        assert over == [helpers.d(2)]
        assert validate_schedule(ctx).by_category(CATEGORY_CONSECUTIVE)

    def test_no_working_days(self, make_ctx, weekday_pattern):
        ctx = make_ctx(work_days={k: "OFF" for k in weekday_pattern})
        assert validate_schedule(ctx).is_clean
