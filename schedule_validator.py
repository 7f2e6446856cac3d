"""Post-generation schedule checks.

The validator rescans a finished month and reports problems a person should
look at: days that miss their headcount target, a daily headcount spread of 2
or more across the valid days, and members whose working streak (including the
streak carried in from last month) runs past the limit.

Findings are advisory. They never raise and are returned on every run; the
retry controller only looks at whether a variance finding is present.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable

from constants import VARIANCE_THRESHOLD
from logger import get_logger
from schedule_builders import ScheduleContext
from shift_ledger import ShiftLedger

logger = get_logger('schedule_validator')

CATEGORY_TARGET = "target"
CATEGORY_VARIANCE = "variance"
CATEGORY_CONSECUTIVE = "consecutive"


@dataclass
class Finding:
    """A single problem found in a generated month."""
    category: str  # "target", "variance" or "consecutive"
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationReport:
    findings: list[Finding] = field(default_factory=list)

    def add(self, finding: Finding) -> None:
        self.findings.append(finding)

    def by_category(self, category: str) -> list[Finding]:
        return [f for f in self.findings if f.category == category]

    @property
    def has_variance_issue(self) -> bool:
        return bool(self.by_category(CATEGORY_VARIANCE))

    @property
    def is_clean(self) -> bool:
        return not self.findings

    def messages(self) -> list[str]:
        return [f.message for f in self.findings]

    def format_report(self) -> str:
        """Format the report as a human-readable string."""
        lines = ["=" * 60, "SCHEDULE CHECK", "=" * 60, ""]
        if self.is_clean:
            lines.append("✓ No problems found")
        else:
            lines.append(f"✗ {len(self.findings)} problem(s) found")
            lines.append("")
            for f in self.findings:
                lines.append(f"  • [{f.category}] {f.message}")
                for key in ("locked_on_site", "locked_off"):
                    for d_str, names in f.details.get(key, {}).items():
                        label = "locked on site" if key == "locked_on_site" else "locked off"
                        lines.append(f"      {d_str}: {len(names)} {label} -> {', '.join(names)}")
        lines.append("")
        lines.append("=" * 60)
        return "\n".join(lines)


def daily_headcounts(ledger: ShiftLedger, member_ids: Iterable[str], dates: Iterable[date]) -> dict[date, float]:
    """Day-value sum of `member_ids` on each date."""
    member_ids = list(member_ids)
    return {d: ledger.headcount(d, member_ids) for d in dates}


def _check_targets(ctx: ScheduleContext, counts: dict[date, float], report: ValidationReport) -> None:
    for day in ctx.work_dates:
        if not ctx.has_target(day):
            continue
        target = ctx.daily_targets[day]
        if counts[day] != target:
            report.add(Finding(
                category=CATEGORY_TARGET,
                message=f"📅 {day}: target {target} → actual {counts[day]:g}",
                details={"date": str(day), "target": target, "actual": counts[day]},
            ))


def _lock_impact(ctx: ScheduleContext, days: list[date], shift: str) -> dict[str, list[str]]:
    """Names of members locked to `shift` on each of `days`."""
    names = {m.id: m.name for m in ctx.members}
    impact = {}
    for day in days:
        locked = [names[m] for m in ctx.member_ids if ctx.ledger.locked_shift(day, m) == shift]
        if locked:
            impact[str(day)] = locked
    return impact


def _check_variance(ctx: ScheduleContext, counts: dict[date, float], report: ValidationReport) -> None:
    valid = {d: counts[d] for d in ctx.valid_dates}
    if not valid:
        return
    low, high = min(valid.values()), max(valid.values())
    if high - low < VARIANCE_THRESHOLD:
        return

    max_days = [d for d, c in valid.items() if c == high]
    min_days = [d for d, c in valid.items() if c == low]
    report.add(Finding(
        category=CATEGORY_VARIANCE,
        message=f"⚠️ Daily headcount spread is too large (min: {low:g}, max: {high:g})",
        details={
            "min": low,
            "max": high,
            "min_dates": [str(d) for d in min_days],
            "max_dates": [str(d) for d in max_days],
            "locked_on_site": _lock_impact(ctx, max_days, 'ON_SITE'),
            "locked_off": _lock_impact(ctx, min_days, 'OFF'),
        },
    ))


def longest_streak(ctx: ScheduleContext, member_id: str) -> tuple[int, list[date]]:
    """Longest working run (seeded with the carried streak) and the days past the limit."""
    streak = ctx.streak_seeds.get(member_id, 0)
    longest = streak
    over_days = []
    for day in ctx.dates:
        if ctx.ledger.value(day, member_id) > 0:
            streak += 1
            longest = max(longest, streak)
            if streak > ctx.max_consecutive:
                over_days.append(day)
        else:
            streak = 0
    return longest, over_days


def _check_consecutive(ctx: ScheduleContext, report: ValidationReport) -> None:
    limit = ctx.max_consecutive
    for member in ctx.members:
        longest, over_days = longest_streak(ctx, member.id)
        if longest > limit:
            report.add(Finding(
                category=CATEGORY_CONSECUTIVE,
                message=f"👤 {member.name}: {longest} consecutive work days (limit: {limit})",
                details={
                    "member_id": member.id,
                    "longest": longest,
                    "limit": limit,
                    "dates": [str(d) for d in over_days],
                },
            ))


def validate_schedule(ctx: ScheduleContext) -> ValidationReport:
    report = ValidationReport()
    counts = daily_headcounts(ctx.ledger, ctx.member_ids, ctx.work_dates)

    _check_targets(ctx, counts, report)
    _check_variance(ctx, counts, report)
    _check_consecutive(ctx, report)

    if report.findings:
        logger.info(f"Validation found {len(report.findings)} issue(s)")
    return report
