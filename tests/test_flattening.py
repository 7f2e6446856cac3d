"""
Tests for flattening.py - Directed headcount flattening
"""

from datetime import date

from flattening import daily_counts, flatten, flatten_schedule
from schedule_builders import build_initial_assignment
from shift_ledger import ShiftLedger


def _lumpy_ctx(make_ctx, sample_members, helpers, ledger=None):
    """Team t1 only: both work June 1, both off June 2, one works the rest."""
    ctx = make_ctx(members=sample_members[:2], ledger=ledger or ShiftLedger())
    helpers.fill(ctx.ledger, ctx.dates, ["m1", "m2"], "OFF")
    helpers.fill(ctx.ledger, ctx.work_dates, ["m1"], "ON_SITE")
    helpers.fill(ctx.ledger, [helpers.d(1)], ["m2"], "ON_SITE")
    helpers.fill(ctx.ledger, [helpers.d(2)], ["m1"], "OFF")
    return ctx


class TestDailyCounts:
    """Tests for daily_counts."""

    def test_counts_only_valid_days(self, make_ctx, helpers):
        ctx = make_ctx()
        helpers.fill(ctx.ledger, ctx.dates, ctx.member_ids, "ON_SITE")
        counts = daily_counts(ctx, ctx.member_ids)
        assert len(counts) == 22
        assert date(2026, 6, 6) not in counts
        assert all(c == 4 for c in counts.values())


class TestFlatten:
    """Tests for flatten and flatten_schedule."""

    def test_moves_work_from_peak_to_trough(self, make_ctx, sample_members, helpers):
        ctx = _lumpy_ctx(make_ctx, sample_members, helpers)
        moves = flatten(ctx, ["m1", "m2"], 200)
        assert moves == 1
        counts = daily_counts(ctx, ["m1", "m2"])
        assert max(counts.values()) - min(counts.values()) < 2

    def test_member_totals_preserved(self, make_ctx, sample_members, helpers):
        ctx = _lumpy_ctx(make_ctx, sample_members, helpers)
        before = {m: helpers.member_total(ctx.ledger, m, ctx.dates) for m in ctx.member_ids}
        flatten_schedule(ctx)
        after = {m: helpers.member_total(ctx.ledger, m, ctx.dates) for m in ctx.member_ids}
        assert before == after

    def test_already_flat_makes_no_moves(self, make_ctx, helpers):
        ctx = make_ctx()
        helpers.fill(ctx.ledger, ctx.dates, ctx.member_ids, "OFF")
        helpers.fill(ctx.ledger, ctx.work_dates, ["m1", "m3"], "ON_SITE")
        assert flatten_schedule(ctx) == 0

    def test_locked_cells_not_moved(self, make_ctx, sample_members, helpers):
        ledger = ShiftLedger()
        ledger.lock(helpers.d(1), "m1", "ON_SITE")
        ledger.lock(helpers.d(1), "m2", "ON_SITE")
        ctx = _lumpy_ctx(make_ctx, sample_members, helpers, ledger=ledger)
        assert flatten(ctx, ["m1", "m2"], 200) == 0
        assert ctx.ledger.get(helpers.d(1), "m1") == "ON_SITE"
        assert ctx.ledger.get(helpers.d(1), "m2") == "ON_SITE"

    def test_attempt_limit_respected(self, make_ctx, sample_members, helpers):
        ctx = _lumpy_ctx(make_ctx, sample_members, helpers)
        assert flatten(ctx, ["m1", "m2"], 0) == 0

    def test_no_valid_days(self, make_ctx, weekday_pattern):
        pattern = {k: "OFF" for k in weekday_pattern}
        ctx = make_ctx(work_days=pattern)
        assert flatten_schedule(ctx) == 0

    def test_initial_fill_then_flatten_keeps_quota(self, make_ctx, helpers):
        ctx = make_ctx()
        quotas = build_initial_assignment(ctx)
        flatten_schedule(ctx)
        for member_id, quota in quotas.items():
            assert helpers.member_total(ctx.ledger, member_id, ctx.dates) == quota.target
